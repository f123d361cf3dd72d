"""Common Ground API - deliberation analytics for discussion topics

Endpoints:
- Latest common ground analysis (agreement zones, misunderstandings, disagreements)
- On-demand analysis pass
- Bridging suggestions and divergence points
- Per-response recompute hook (fire-and-forget)

Analytics errors never reach users as details; failures map to a generic 500.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from config import get_logger
from server.dependencies import get_service
from server.metrics import metrics
from server.services.common_ground import CommonGroundService

logger = get_logger(__name__).bind(component="common_ground_api")

router = APIRouter(prefix="/api/v1/topics", tags=["common-ground"])


def _topic_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found")


@router.get("/{topic_id}/common-ground")
async def get_common_ground(
    topic_id: str,
    service: CommonGroundService = Depends(get_service),
):
    """Latest analysis for a topic, or a default message if none exists yet."""
    try:
        analysis = await service.get_latest(topic_id)
    except Exception as e:
        metrics.record_error("api", e)
        logger.exception("error fetching common ground", topic_id=topic_id)
        raise HTTPException(status_code=500, detail="Error retrieving common ground analysis")

    if analysis is None:
        raise _topic_not_found()
    return analysis


@router.post("/{topic_id}/common-ground/analyze")
async def analyze_common_ground(
    topic_id: str,
    service: CommonGroundService = Depends(get_service),
):
    """Run an analysis pass now and return its result."""
    try:
        analysis = await service.analyze_topic(topic_id)
    except Exception as e:
        metrics.record_error("api", e)
        logger.exception("error analyzing common ground", topic_id=topic_id)
        raise HTTPException(status_code=500, detail="Error generating common ground analysis")

    if analysis is None:
        raise _topic_not_found()
    return analysis


@router.get("/{topic_id}/bridging-suggestions")
async def get_bridging_suggestions(
    topic_id: str,
    service: CommonGroundService = Depends(get_service),
):
    try:
        return await service.get_bridging(topic_id)
    except Exception as e:
        metrics.record_error("api", e)
        logger.exception("error generating bridging suggestions", topic_id=topic_id)
        raise HTTPException(status_code=500, detail="Error generating bridging suggestions")


@router.get("/{topic_id}/divergence-points")
async def get_divergence_points(
    topic_id: str,
    service: CommonGroundService = Depends(get_service),
):
    try:
        return await service.get_divergence(topic_id)
    except Exception as e:
        metrics.record_error("api", e)
        logger.exception("error identifying divergence points", topic_id=topic_id)
        raise HTTPException(status_code=500, detail="Error identifying divergence points")


@router.post("/{topic_id}/responses/created", status_code=status.HTTP_202_ACCEPTED)
async def response_created(
    topic_id: str,
    service: CommonGroundService = Depends(get_service),
):
    """Hook called after a response is posted.

    Schedules the recompute check in the background and returns at once;
    the caller's write never depends on it.
    """
    try:
        service.on_response_created(topic_id)
    except Exception as e:
        metrics.record_error("api", e)
        logger.error("failed to schedule recompute check", topic_id=topic_id, error=str(e))
    return {"accepted": True, "topic_id": topic_id}
