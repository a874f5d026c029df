"""Central route registration."""
from litestar.types import ControllerRouterHandler

from loglens.api.v1.analytics_controller import AnalyticsController


def get_route_handlers() -> list[ControllerRouterHandler]:
    """Get all route handlers for the application."""
    return [
        AnalyticsController,
    ]
