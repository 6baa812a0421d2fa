import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from logging.config import fileConfig
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool
from alembic import context

from propertyhub.config import settings
from propertyhub.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# The app runs on asyncpg; migrations use the sync psycopg2 driver on the same database
url = make_url(settings.DATABASE_URL)
if url.drivername == "postgresql+asyncpg":
    url = url.set(drivername="postgresql+psycopg2")
sync_db_url = url.render_as_string(hide_password=False)


def run_migrations_offline():
    """Emit SQL for the schema without connecting to a database."""
    context.configure(
        url=sync_db_url,
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    # No pooling to avoid pooler issues on hosted databases
    engine = create_engine(sync_db_url, poolclass=NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=Base.metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
