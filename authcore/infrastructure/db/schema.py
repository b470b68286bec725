from __future__ import annotations

import logging

from authcore.infrastructure.db.engine import Base
from authcore.infrastructure.db.models import accounts  # noqa: F401


logger = logging.getLogger(__name__)


def create_schema(engine) -> None:
    Base.metadata.create_all(engine)
    logger.info("Ensured auth schema tables: %s", ", ".join(sorted(Base.metadata.tables)))
