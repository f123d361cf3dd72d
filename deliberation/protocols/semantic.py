"""Semantic Analysis Protocol - Interface for the optional semantic collaborator

Any concrete implementation (hosted model, local index, stub) plugs in here.
Contract as seen by the engine:
- is_ready() must not raise; False means "skip enhancement"
- cluster_texts() raising or returning [] both mean "no enhancement"
- identify_values() returning [] or the degraded sentinel means "no enhancement"
"""

from typing import List, Protocol, TypedDict


# Phrase marking a value list that carries no real analysis
VALUES_PENDING_SENTINEL = "moral foundations analysis"


class TextCluster(TypedDict):
    theme: str
    members: List[str]


class InterpretationSummary(TypedDict):
    label: str
    participant_count: int


class SemanticAnalyzer(Protocol):
    """Semantic-analysis capabilities consumed by the enhancement layer"""

    name: str

    async def is_ready(self) -> bool: ...

    async def cluster_texts(self, texts: List[str], max_clusters: int = 3) -> List[TextCluster]: ...

    async def identify_values(self, texts: List[str]) -> List[str]: ...

    async def generate_clarification(
        self,
        topic: str,
        interpretations: List[InterpretationSummary],
    ) -> str: ...


def is_degraded_values(values: List[str]) -> bool:
    """True when a value list is empty or any entry is the degraded sentinel"""
    if not values:
        return True
    return any(VALUES_PENDING_SENTINEL in value for value in values)


class NullSemanticAnalyzer:
    """Never-ready analyzer; the engine runs on pattern analysis alone"""

    name = "none"

    async def is_ready(self) -> bool:
        return False

    async def cluster_texts(self, texts: List[str], max_clusters: int = 3) -> List[TextCluster]:
        return []

    async def identify_values(self, texts: List[str]) -> List[str]:
        return []

    async def generate_clarification(
        self,
        topic: str,
        interpretations: List[InterpretationSummary],
    ) -> str:
        return ""
