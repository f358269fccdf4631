"""Heating manager - switches heaters based on the current electricity price."""

from .manager import HeatingManager


def main():
    """Entry point for the heating manager."""
    import asyncio
    import logging
    import os
    import sys

    import yaml
    from dotenv import load_dotenv

    from homefaerie.shared.config import get_log_level
    from homefaerie.shared.logging import setup_logging
    from .config import load_config
    from .manager import EXIT_FAILURE

    logger = logging.getLogger(__name__)

    load_dotenv()
    setup_logging(get_log_level(), style=os.getenv("LOG_STYLE"))

    try:
        config = load_config()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(EXIT_FAILURE)

    manager = HeatingManager(config)

    try:
        exit_code = asyncio.run(manager.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = EXIT_FAILURE

    sys.exit(exit_code)


__all__ = ["HeatingManager", "main"]
