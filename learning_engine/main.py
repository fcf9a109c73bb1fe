"""Process-level wiring for hosts embedding the engine.

A host (web app, worker) enters ``lifespan()`` once at startup:

    async with lifespan():
        async with session_scope() as session:
            service = create_service(session)
            await service.update_knowledge_state(...)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from learning_engine.core.config import SETTINGS
from learning_engine.core.logging import setup_logging
from learning_engine.db.engine import lifespan_db
from learning_engine.db.redis import lifespan_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(*, configure_logging: bool = True) -> AsyncGenerator[None, None]:
    if configure_logging:
        setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

    logger.info(
        "learning-engine starting  env=%s log_level=%s model_version=%s",
        SETTINGS.app_env,
        SETTINGS.log_level,
        SETTINGS.model_version,
    )
    # Teardown runs in reverse order even if one backend fails.
    async with lifespan_db():
        async with lifespan_redis():
            yield
