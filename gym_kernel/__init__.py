"""
Gym Kernel - shared infrastructure for the gym billing tax core.

Provides:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- SQLAlchemy declarative base and session management
"""

__version__ = "0.1.0"
