"""Migration environment for the event RSVP schema.

The target URL always comes from DATABASE_URL, never from alembic.ini.
Identities, revoked tokens, profiles, events and RSVPs are registered on
Base.metadata for autogenerate. SQLite runs in batch mode because it
cannot ALTER most constraints in place.
"""
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from event_rsvp.config import settings
from event_rsvp.database import Base

# Import all models so they register with Base.metadata
from event_rsvp.models.identity import AuthIdentity, RevokedToken  # noqa: F401
from event_rsvp.models.profile import Profile  # noqa: F401
from event_rsvp.models.event import Event  # noqa: F401
from event_rsvp.models.rsvp import RSVP  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
render_as_batch = settings.DATABASE_URL.startswith("sqlite")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=render_as_batch,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=render_as_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
