from __future__ import annotations

# isort: off
import spendwise.models  # noqa: F401
# isort: on

from spendwise.core.config import settings
from spendwise.core.db import engine
from spendwise.core.logging import get_logger, log_event
from spendwise.core.models import Base

logger = get_logger(__name__)


def bootstrap() -> None:
    if settings.environment in {"dev", "test"} and str(settings.database_url).startswith("sqlite"):
        Base.metadata.create_all(engine)
        log_event(logger, "bootstrap.schema.created", environment=settings.environment)
