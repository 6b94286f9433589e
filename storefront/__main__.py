import logging

import uvicorn

from .config import get_settings
from .logs import configure_logging

logger = logging.getLogger("storefront")


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    logger.info("Starting storefront service (%s)", settings.server_env)
    logger.info("Server binding to %s:%s", settings.host, settings.port)
    uvicorn.run(
        "storefront.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
    logger.info("Shutting down")


if __name__ == "__main__":
    main()
