import logging
from pathlib import Path

from fastapi import FastAPI

from app.core.settings import settings
from app.db.session import engine
from app.services.kyc_uploads import kyc_upload_dir
from app.utils.redis_client import close_redis_client

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        upload_dir = kyc_upload_dir(Path(settings.upload_dir))
        upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Application startup; KYC uploads stored in %s", upload_dir)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        await close_redis_client()
        await engine.dispose()
