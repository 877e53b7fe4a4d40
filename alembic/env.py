"""
Alembic environment for the load-hunt schema.

DATABASE_URL comes from loadhunt.config (and .env); alembic.ini carries no URL.
"""
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

import loadhunt.models  # noqa: F401  registers every table on Base.metadata
from loadhunt.config import settings
from loadhunt.db.base import Base
from loadhunt.db.tables import ALL_TABLE_NAMES

load_dotenv()

_registered = set(Base.metadata.tables)
_expected = set(ALL_TABLE_NAMES)
if _registered != _expected:
    raise RuntimeError(
        f"Registered model tables {sorted(_registered)} differ from loadhunt.db.tables.ALL_TABLE_NAMES "
        f"{sorted(_expected)}; update both together with a migration."
    )

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
# configparser treats % as interpolation; passwords with % must be escaped
config.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
