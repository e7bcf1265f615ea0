"""Journal API entry point"""
import logging
import uvicorn

from journal_api.api.server import create_api_application
from journal_api.config import settings

logger = logging.getLogger(__name__)

app = create_api_application()


def main() -> None:
    logger.info(f"Starting journal API on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
