import logging
import sys

import uvicorn

from app import create_app
from config import load_settings
from errors import ConfigError
from logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main():
    try:
        settings = load_settings()
    except ConfigError as e:
        setup_logging()
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)

    setup_logging(settings.log_level)
    app = create_app(settings)
    logger.info("API is running at http://%s:%s%s", settings.host, settings.port, settings.api_prefix)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
