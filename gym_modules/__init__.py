"""
Gym Modules.

Thin persistence glue over the Gym Kernel and Engines.

Modules:
- Tax: master tax settings, receipt tax mapping, tax configuration
"""
