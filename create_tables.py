# create_tables.py
# Quick bootstrap for development databases; use alembic for anything shared.
from app.core.config import Settings
from app.core.logging import configure_logging
from app.database import init_db


if __name__ == "__main__":
    configure_logging(Settings().log_level)
    init_db()
