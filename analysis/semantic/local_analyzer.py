"""Local semantic analyzer - offline TF-IDF + k-means behind the SemanticAnalyzer protocol

Algorithm:
1. TF-IDF vectorize the explanations (English stop words removed)
2. K-means with dynamic K selection, capped by max_clusters
3. Theme each cluster from its highest-weighted centroid terms

Values come from a moral-foundations keyword lexicon; no hits yields the
degraded sentinel so the engine keeps the pattern result.
"""

import asyncio
import re
from typing import Dict, List, Tuple

import numpy as np
from sklearn.cluster import KMeans
from sklearn.feature_extraction.text import TfidfVectorizer

from config import get_logger
from deliberation.protocols.semantic import (
    VALUES_PENDING_SENTINEL,
    InterpretationSummary,
    TextCluster,
)

logger = get_logger(__name__).bind(component="semantic")

THEME_TERMS = 3
MAX_VALUES = 5

NO_VALUES_IDENTIFIED = f"Underlying values need deeper {VALUES_PENDING_SENTINEL}"

# Value name -> word prefixes that signal it
VALUE_LEXICON: Dict[str, Tuple[str, ...]] = {
    "Care and harm prevention": ("care", "harm", "safe", "protect", "wellbeing", "health", "suffer", "vulnerab"),
    "Fairness": ("fair", "equal", "equit", "justice", "rights", "discriminat"),
    "Liberty": ("free", "liberty", "choice", "choose", "autonom", "individual", "overreach"),
    "Loyalty": ("communit", "loyal", "nation", "together", "belong", "neighbo"),
    "Authority": ("law", "order", "rule", "authorit", "tradition", "respect", "stabil"),
    "Sanctity": ("sacred", "pure", "purity", "dignity", "natural", "moral"),
    "Economic responsibility": ("cost", "tax", "budget", "afford", "econom", "job", "spend"),
}

_VALUE_PATTERNS = {
    value: re.compile(r"\b(?:" + "|".join(prefixes) + r")", re.IGNORECASE)
    for value, prefixes in VALUE_LEXICON.items()
}


def _determine_k(n_texts: int, max_clusters: int) -> int:
    """Number of clusters: min(max_clusters, 2 + floor(n/12)), never more than n

    Examples:
        - 1 text -> K = 1
        - 6 texts, max 3 -> K = 2
        - 24 texts, max 3 -> K = 3 (capped)
    """
    if n_texts < 2:
        return min(1, max_clusters)
    k = 2 + n_texts // 12
    return max(1, min(k, max_clusters, n_texts))


def cluster_explanations(texts: List[str], max_clusters: int = 3) -> List[TextCluster]:
    """Cluster texts into at most max_clusters themed groups (largest first)"""
    if not texts or max_clusters < 1:
        return []

    vectorizer = TfidfVectorizer(stop_words="english")
    try:
        matrix = vectorizer.fit_transform(texts)
    except ValueError:
        # Empty vocabulary, e.g. only stop words
        logger.debug("no usable terms for clustering", n=len(texts))
        return []

    terms = vectorizer.get_feature_names_out()
    k = _determine_k(len(texts), max_clusters)

    if k == 1:
        labels = np.zeros(len(texts), dtype=int)
        centers = np.asarray(matrix.mean(axis=0))
    else:
        kmeans = KMeans(n_clusters=k, random_state=42, n_init=10)
        labels = kmeans.fit_predict(matrix)
        centers = kmeans.cluster_centers_

    clusters: List[TextCluster] = []
    for label in sorted(set(labels.tolist())):
        members = [texts[i] for i in np.flatnonzero(labels == label)]
        clusters.append({
            "theme": _theme_for(centers[label], terms),
            "members": members,
        })

    clusters.sort(key=lambda c: -len(c["members"]))
    logger.debug("clustered explanations", n=len(texts), k=k, clusters=len(clusters))
    return clusters


def _theme_for(center: np.ndarray, terms: np.ndarray) -> str:
    top = [terms[i] for i in np.argsort(center)[::-1][:THEME_TERMS] if center[i] > 0]
    if not top:
        return "Other considerations"
    return "Emphasis on " + ", ".join(top)


def identify_values(texts: List[str]) -> List[str]:
    """Lexicon values ranked by hit count, ties in lexicon order"""
    hits = []
    for order, (value, pattern) in enumerate(_VALUE_PATTERNS.items()):
        count = sum(len(pattern.findall(text)) for text in texts)
        if count:
            hits.append((-count, order, value))

    if not hits:
        return [NO_VALUES_IDENTIFIED]
    return [value for _, _, value in sorted(hits)[:MAX_VALUES]]


class LocalSemanticAnalyzer:
    """Offline analyzer; always ready"""

    name = "local"

    async def is_ready(self) -> bool:
        return True

    async def cluster_texts(self, texts: List[str], max_clusters: int = 3) -> List[TextCluster]:
        return await asyncio.to_thread(cluster_explanations, list(texts), max_clusters)

    async def identify_values(self, texts: List[str]) -> List[str]:
        if not texts:
            return []
        return identify_values(texts)

    async def generate_clarification(
        self,
        topic: str,
        interpretations: List[InterpretationSummary],
    ) -> str:
        readings = "; ".join(
            f"{i['label']} ({i['participant_count']})" for i in interpretations
        )
        return (
            f'Participants read "{topic[:80]}" in {len(interpretations)} different ways: {readings}. '
            f"Stating which of these the proposition intends may resolve much of the apparent disagreement."
        )
