"""Store Protocols - Data-access and cache interfaces consumed by the engine

CommonGroundStore is implemented by database/repositories_async/common_ground.py.
AnalysisCache fronts the latest stored analysis; InMemoryAnalysisCache is the
default process-local implementation.
"""

import time
from typing import Any, Dict, List, Optional, Protocol, Tuple

from deliberation.models import (
    AnalysisSnapshot,
    Proposition,
    SynthesisResult,
    TopicCounters,
    TopicData,
)


def latest_analysis_cache_key(topic_id: str) -> str:
    return f"common-ground:topic:{topic_id}:latest"


class CommonGroundStore(Protocol):
    """Outbound data access for one topic"""

    async def get_topic_counters(self, topic_id: str) -> Optional[TopicCounters]: ...

    async def get_latest_snapshot(self, topic_id: str) -> Optional[AnalysisSnapshot]: ...

    async def get_propositions(self, topic_id: str) -> List[Proposition]: ...

    async def get_topic_data(self, topic_id: str) -> Optional[TopicData]: ...

    async def save_analysis(
        self,
        topic_id: str,
        result: SynthesisResult,
        counters: TopicCounters,
    ) -> AnalysisSnapshot: ...

    async def get_latest_analysis(self, topic_id: str) -> Optional[Dict[str, Any]]: ...


class AnalysisCache(Protocol):
    async def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryAnalysisCache:
    """Process-local TTL cache

    Entries expire lazily on read. A ttl of 0 or None keeps entries until
    deleted.
    """

    def __init__(self, default_ttl_seconds: Optional[int] = None, clock=time.monotonic):
        self._entries: Dict[str, Tuple[Dict[str, Any], Optional[float]]] = {}
        self._default_ttl = default_ttl_seconds
        self._clock = clock

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expires_at = self._clock() + ttl if ttl else None
        self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
