"""Alembic environment.

Online runs borrow the connection `run_migrations` opened (passed through
`config.attributes["connection"]`), so the upgrade happens inside the same
transaction that holds the advisory lock. Offline runs (`--sql`) only need
a URL to pick the dialect.
"""

from alembic import context

config = context.config

# No ORM metadata: revisions are written by hand.
target_metadata = None


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url") or "postgresql+asyncpg://",
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connection = config.attributes.get("connection")
    if connection is None:
        raise RuntimeError("Online migrations run through lighthouse_audit_service.core.migrations.")

    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
