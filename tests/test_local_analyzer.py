"""
Tests for the offline TF-IDF / k-means analyzer
"""

import asyncio

from analysis.semantic.local_analyzer import (
    LocalSemanticAnalyzer,
    NO_VALUES_IDENTIFIED,
    _determine_k,
    cluster_explanations,
    identify_values,
)
from deliberation.protocols import is_degraded_values


class TestDetermineK:

    def test_single_text(self):
        assert _determine_k(1, 3) == 1

    def test_small_sets_use_two(self):
        assert _determine_k(6, 3) == 2

    def test_capped_by_max_clusters(self):
        assert _determine_k(40, 3) == 3

    def test_never_more_than_texts(self):
        assert _determine_k(2, 1) == 1


class TestClusterExplanations:

    def test_separates_distinct_themes(self):
        texts = [
            "bike lanes on main street",
            "bike lanes near the school",
            "protected bike lanes downtown",
            "property tax increase burden",
            "tax increase hurts homeowners",
            "higher property tax is unfair",
        ]

        clusters = cluster_explanations(texts, max_clusters=2)

        assert len(clusters) == 2
        assert sorted(len(c["members"]) for c in clusters) == [3, 3]
        groups = [set(c["members"]) for c in clusters]
        assert set(texts[:3]) in groups
        assert all(c["theme"].startswith("Emphasis on ") for c in clusters)

    def test_every_text_lands_in_one_cluster(self):
        texts = ["only in summer", "only near schools", "if enforced fairly", "depends on budget"]

        clusters = cluster_explanations(texts, max_clusters=3)

        members = [m for c in clusters for m in c["members"]]
        assert sorted(members) == sorted(texts)
        assert len(clusters) <= 3

    def test_single_text_is_one_cluster(self):
        clusters = cluster_explanations(["parking minimums hurt small businesses"], max_clusters=3)

        assert len(clusters) == 1
        assert clusters[0]["members"] == ["parking minimums hurt small businesses"]

    def test_stop_words_only_yields_nothing(self):
        assert cluster_explanations(["the and of", "it is"], max_clusters=2) == []

    def test_empty_input(self):
        assert cluster_explanations([], max_clusters=3) == []


class TestIdentifyValues:

    def test_ranked_by_hits(self):
        values = identify_values([
            "Protects kids and keeps streets safe",
            "It is too costly for the budget",
            "Government overreach on personal choice",
            "Unsafe crossings harm children",
        ])

        assert values[0] == "Care and harm prevention"
        assert "Economic responsibility" in values
        assert "Liberty" in values

    def test_no_hits_is_degraded(self):
        values = identify_values(["hmm", "not sure"])

        assert values == [NO_VALUES_IDENTIFIED]
        assert is_degraded_values(values)


class TestLocalSemanticAnalyzer:

    def test_always_ready(self):
        assert asyncio.run(LocalSemanticAnalyzer().is_ready()) is True

    def test_cluster_texts_runs_off_loop(self):
        clusters = asyncio.run(LocalSemanticAnalyzer().cluster_texts(["rent control now", "rent caps"], 2))
        assert sum(len(c["members"]) for c in clusters) == 2

    def test_empty_values(self):
        assert asyncio.run(LocalSemanticAnalyzer().identify_values([])) == []

    def test_clarification_names_every_reading(self):
        text = asyncio.run(LocalSemanticAnalyzer().generate_clarification(
            "Ban cars downtown",
            [{"label": "Seasonal", "participant_count": 2}, {"label": "Weekends", "participant_count": 3}],
        ))

        assert "Ban cars downtown" in text
        assert "2 different ways" in text
        assert "Seasonal (2)" in text
        assert "Weekends (3)" in text
