"""Run the collaboration server: ``python -m collabsync``."""

import logging

import uvicorn

from collabsync.config import CollabSyncSettings
from collabsync.server import create_app

logger = logging.getLogger("collabsync")


def main() -> None:
    settings = CollabSyncSettings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(f"Starting collaboration server on {settings.host}:{settings.port}")
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
