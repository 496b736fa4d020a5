"""
Alembic env.py (миграции БД).

Назначение:
- подключить metadata моделей
- дать Alembic доступ к DATABASE URL

Важно:
- URL берётся из POSTGRES_DSN (ENV / .env), sqlalchemy.url в alembic.ini не используется
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from geo_incident_service.common.config import get_settings
from geo_incident_service.storage.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    settings = get_settings()
    context.configure(
        url=settings.postgres_dsn,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    settings = get_settings()

    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = settings.postgres_dsn

    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
