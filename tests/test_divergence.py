"""
Tests for divergence scoring

A divergence point needs at least 3 alignments, support and opposition of
at least 20% each, and a nuanced share below 40%.
"""

from deliberation.divergence import (
    OPPOSE_PLACEHOLDER,
    SUPPORT_PLACEHOLDER,
    analyze_topic,
    calculate_overall_polarization,
    calculate_polarization,
    count_unique_participants,
    score_proposition,
)
from deliberation.models import Alignment, Proposition, Stance
from fakes import make_proposition


class TestPolarization:

    def test_even_split_is_maximal(self):
        assert calculate_polarization(0.5, 0.5) == 1.0

    def test_lopsided_split_is_low(self):
        assert calculate_polarization(0.9, 0.1) == 0.36

    def test_unanimous_is_zero(self):
        assert calculate_polarization(1.0, 0.0) == 0.0

    def test_never_exceeds_one_with_nuance_present(self):
        assert calculate_polarization(0.35, 0.35) == 1.0


class TestScoreProposition:

    def test_even_split_scores_one(self):
        point = score_proposition(make_proposition("p1", support=5, oppose=5))

        assert point is not None
        assert point.polarization_score == 1.0
        assert point.total_participants == 10
        assert point.proposition_id == "p1"

    def test_minority_below_floor_is_skipped(self):
        # 10% opposition is below the 20% floor
        assert score_proposition(make_proposition("p1", support=9, oppose=1)) is None

    def test_eight_to_two_is_low_polarization(self):
        point = score_proposition(make_proposition("p1", support=8, oppose=2))
        assert point is not None
        assert point.polarization_score == 0.64

    def test_heavy_nuance_is_not_divergence(self):
        assert score_proposition(make_proposition("p1", support=3, oppose=3, nuanced=4)) is None

    def test_below_three_participants_is_skipped(self):
        assert score_proposition(make_proposition("p1", support=1, oppose=1)) is None

    def test_viewpoints_carry_counts_and_percentages(self):
        point = score_proposition(make_proposition("p1", support=6, oppose=4))

        support, oppose = point.viewpoints
        assert (support.position, support.participant_count, support.percentage) == ("Support", 6, 60)
        assert (oppose.position, oppose.participant_count, oppose.percentage) == ("Oppose", 4, 40)

    def test_half_percentages_round_up(self):
        # 62.5% and 37.5%
        point = score_proposition(make_proposition("p1", support=5, oppose=3))

        assert [v.percentage for v in point.viewpoints] == [63, 38]
        assert point.polarization_score == 0.94

    def test_placeholder_when_side_has_no_explanations(self):
        point = score_proposition(make_proposition("p1", support=5, oppose=5))

        assert point.viewpoints[0].reasoning == [SUPPORT_PLACEHOLDER]
        assert point.viewpoints[1].reasoning == [OPPOSE_PLACEHOLDER]

    def test_reasoning_limited_to_three_excerpts(self):
        point = score_proposition(make_proposition(
            "p1",
            support=5,
            oppose=5,
            support_texts=["a", "b", "c", "d", "e"],
            oppose_texts=["too costly"],
        ))

        assert point.viewpoints[0].reasoning == ["a", "b", "c"]
        assert point.viewpoints[1].reasoning == ["too costly"]


class TestTopicAggregates:

    def test_overall_polarization_is_participant_weighted(self):
        points = [
            score_proposition(make_proposition("p1", support=5, oppose=5)),
            score_proposition(make_proposition("p2", support=24, oppose=6)),
        ]
        # (1.0 * 10 + 0.64 * 30) / 40
        assert calculate_overall_polarization(points) == 0.73

    def test_overall_polarization_without_points_is_zero(self):
        assert calculate_overall_polarization([]) == 0.0

    def test_unique_participants_are_counted_globally(self):
        shared = [
            Proposition(
                id=pid,
                statement=pid,
                support_count=1,
                oppose_count=1,
                alignments=[
                    Alignment(user_id="alice", stance=Stance.SUPPORT),
                    Alignment(user_id="bob", stance=Stance.OPPOSE),
                ],
            )
            for pid in ("p1", "p2")
        ]
        assert count_unique_participants(shared) == 2

    def test_analyze_topic(self):
        analysis = analyze_topic("t1", [
            make_proposition("p1", support=5, oppose=5),
            make_proposition("p2", support=10),
            make_proposition("p3", support=1, oppose=1),
        ])

        assert analysis.topic_id == "t1"
        assert [p.proposition_id for p in analysis.divergence_points] == ["p1"]
        assert analysis.overall_polarization == 1.0
        assert analysis.participant_count == 22
        assert analysis.analyzed_at is not None
        assert analysis.to_dict()["analyzed_at"] is not None
