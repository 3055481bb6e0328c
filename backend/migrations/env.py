# backend/migrations/env.py
"""
Alembic environment for the BRD store.

`backend.db.migrate()` hands over an open connection through
`config.attributes["connection"]`; without one (offline mode, or an ad-hoc
`alembic` run) the current `backend.db.engine` is used.
"""
from alembic import context

from backend import db as dbmod
from backend import models  # noqa: F401  registers tables on Base.metadata

config = context.config
target_metadata = dbmod.Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=str(dbmod.engine.url),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connection = config.attributes.get("connection")
    if connection is not None:
        _run(connection)
        return
    with dbmod.engine.connect() as conn:
        _run(conn)
        conn.commit()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
