"""
Prometheus metrics middleware for API requests

Instruments all API requests with:
- Request count (by endpoint, method, status_code)
- Request duration (by endpoint, method)
"""

import time
from fastapi import Request

from server.metrics import metrics

# Path segments that are followed by an identifier
_ID_PARENTS = {"topics": ":topic_id"}


async def metrics_middleware(request: Request, call_next):
    """Record Prometheus metrics for all API requests"""
    start_time = time.time()

    endpoint = _normalize_endpoint(request.url.path)
    method = request.method

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response

    except Exception:
        # Record error as 500
        status_code = 500
        raise

    finally:
        metrics.api_requests.labels(
            endpoint=endpoint,
            method=method,
            status_code=status_code
        ).inc()

        metrics.api_request_duration.labels(
            endpoint=endpoint,
            method=method
        ).observe(time.time() - start_time)


def _normalize_endpoint(path: str) -> str:
    """Normalize endpoint path for metrics cardinality control

    Converts:
        /api/v1/topics/topic-42/common-ground -> /api/v1/topics/:topic_id/common-ground
    """
    parts = [part for part in path.split('/') if part]
    normalized_parts = []

    for i, part in enumerate(parts):
        previous = parts[i - 1] if i > 0 else None
        if previous in _ID_PARENTS:
            normalized_parts.append(_ID_PARENTS[previous])
        else:
            normalized_parts.append(part)

    return '/' + '/'.join(normalized_parts)
