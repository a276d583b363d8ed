from logging.config import fileConfig

from alembic import context

from app.core.logging import configure_logging
from app.database import engine, load_models, settings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)
else:
    configure_logging(settings.log_level)

target_metadata = load_models()

# SQLite cannot ALTER most constraints in place
render_as_batch = engine.dialect.name == "sqlite"


def run_migrations_offline() -> None:
    context.configure(
        url=engine.url.render_as_string(hide_password=False),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=render_as_batch,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=render_as_batch,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
