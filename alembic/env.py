"""Alembic environment for the post feed schema.

Both modes read the store URL from ``postfeed.config.settings`` so that
migrations and the running service always point at the same database.
SQLite URLs (local experiments, the test store) migrate in batch mode,
since SQLite cannot ALTER most column properties in place.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from postfeed.config import settings
from postfeed.database import Base

# Registers the users and posts tables on Base.metadata for autogenerate.
import postfeed.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

target_metadata = Base.metadata


def _configure_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


# ---------------------------------------------------------------------------
# Offline: emit SQL for review
# ---------------------------------------------------------------------------
def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


# ---------------------------------------------------------------------------
# Online: apply against the live store through the async driver
# ---------------------------------------------------------------------------
def _apply(connection) -> None:
    context.configure(connection=connection, **_configure_options(settings.DATABASE_URL))
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_apply)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
