"""
Module ORM Registry (``gym_modules._orm_registry``).

Ensures every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains its table definition before tables are created.
Called by ``gym_kernel.db.engine.create_tables()``.
"""


def import_all_orm_models() -> None:
    """Import every ``gym_modules.*.orm`` module.  Idempotent."""
    import gym_modules.tax.orm  # noqa: F401
