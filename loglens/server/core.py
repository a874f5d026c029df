"""Application factory for creating Litestar app instance."""

from __future__ import annotations


from litestar import Litestar
from litestar.middleware.logging import LoggingMiddlewareConfig

from loglens.config.settings import get_settings
from loglens.server import plugins
from loglens.server.lifecycle import on_startup, on_shutdown
from loglens.server.routes import get_route_handlers


def create_app() -> Litestar:
    """Create and configure the Litestar application.

    Search and ingestion services are created in `on_startup` and kept on
    `app.state`; route handlers reach them through dependency providers.

    Returns:
        Litestar: Configured application instance
    """
    settings = get_settings()

    logging_middleware_config = LoggingMiddlewareConfig()

    return Litestar(
        debug=settings.debug,
        route_handlers=get_route_handlers(),
        on_startup=[on_startup],
        on_shutdown=[on_shutdown],
        logging_config=plugins.logging_config,
        openapi_config=plugins.openapi_config,
        middleware=[logging_middleware_config.middleware],
    )
