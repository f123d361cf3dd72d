"""FastAPI Dependencies

Centralized dependency injection for reuse across all route modules.
"""

from fastapi import Request

from server.services.common_ground import CommonGroundService


def get_service(request: Request) -> CommonGroundService:
    """Dependency to get the common ground service from app state

    Usage in routes:
        @router.get("/endpoint")
        async def endpoint(service: CommonGroundService = Depends(get_service)):
            return await service.get_latest(topic_id)

    Tests swap in a fake by setting app.state.common_ground.
    """
    return request.app.state.common_ground
