"""FastAPI application factory."""

import logging
from typing import Optional

from fastapi import FastAPI

from chainweaver import __version__
from chainweaver.config import get_settings
from chainweaver.relay import TransferRelay

logger = logging.getLogger(__name__)


def create_app(relay: Optional[TransferRelay] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        relay: Relay to serve; built from settings when omitted
    """
    settings = get_settings()

    app = FastAPI(
        title="ChainWeaver Signer",
        description="Stateless sign-and-send relay for NEAR transfers",
        version=__version__,
        debug=settings.debug,
    )

    if relay is None:
        network = settings.network_config()
        relay = TransferRelay(network)
        logger.info(f"Relay configured for {network.network_id} via {network.rpc_url}")
    app.state.relay = relay

    # Register routes
    from chainweaver.api.routers import relay as relay_router
    from chainweaver.api.routes import health

    app.include_router(health.router, tags=["Health"])
    app.include_router(relay_router.router)

    return app
