"""
Shared FastAPI dependencies.
"""

from fastapi import Request

from ..core.services import GatewayServices


async def get_services(request: Request) -> GatewayServices:
    """Dependency to get the component graph from app state."""
    return request.app.state.services
