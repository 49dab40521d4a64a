"""Main entry point - runs the signer relay API."""

import logging

import uvicorn

from chainweaver.api.app import create_app
from chainweaver.config import get_settings

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure root logging for the process."""
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main():
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings.debug)

    logger.info("Starting ChainWeaver signer...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Network: {settings.near_network_id} ({settings.near_rpc_url})")

    app = create_app()
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
