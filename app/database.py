import importlib
import logging

from sqlmodel import Session, SQLModel, create_engine
from app.core.config import Settings

logger = logging.getLogger(__name__)

settings = Settings()
engine = create_engine(settings.database_url, echo=settings.sql_echo)

MODEL_MODULES = (
    "app.models.user",
    "app.models.organization",
    "app.models.project",
    "app.models.expense_account",
    "app.models.item",
    "app.models.requisition",
    "app.models.comment",
    "app.models.notification",
    "app.models.template",
)


def load_models():
    """Import every table module so SQLModel.metadata is complete."""
    for module in MODEL_MODULES:
        importlib.import_module(module)
    return SQLModel.metadata


def init_db(bind=None) -> None:
    bind = bind or engine
    load_models().create_all(bind)
    logger.info("Created %d tables on %s", len(SQLModel.metadata.tables), bind.url.render_as_string())


def get_session():
    with Session(engine) as session:
        yield session
