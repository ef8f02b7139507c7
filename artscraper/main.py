import argparse
import logging
import sys

import uvicorn

from .errors import ConfigurationError
from .logging_config import configure_logging
from .settings import load_scrape_config
from .web import create_app

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Artwork metadata scraper service")
    parser.add_argument("--config", help="path to a scrape_config.yaml", default=None)
    args = parser.parse_args(argv)

    try:
        config = load_scrape_config(args.config)
        host, port = config.bind
    except ConfigurationError as e:
        configure_logging()
        logger.error("could not load config: %s", e)
        return 2

    configure_logging(log_format=config.log_format, log_level=config.log_level)
    logger.info("log level is now %s", config.log_level)

    uvicorn.run(create_app(config), host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
