"""
Tests for the deliberation data model invariants

Malformed snapshots are programming-contract violations and must fail at
construction rather than flow into the analysis.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from deliberation.models import (
    Alignment,
    AnalysisSnapshot,
    Proposition,
    Stance,
    SynthesisResult,
    TopicData,
)
from fakes import make_proposition


class TestPropositionInvariants:

    def test_duplicate_user_alignment_rejected(self):
        with pytest.raises(ValidationError):
            Proposition(
                id="p1",
                statement="Expand bike lanes",
                support_count=1,
                nuanced_count=1,
                alignments=[
                    Alignment(user_id="u1", stance=Stance.SUPPORT),
                    Alignment(user_id="u1", stance=Stance.NUANCED),
                ],
            )

    def test_negative_counter_rejected(self):
        with pytest.raises(ValidationError):
            Proposition(id="p1", statement="Expand bike lanes", support_count=-1)

    def test_consensus_score_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            Proposition(id="p1", statement="Expand bike lanes", consensus_score=1.5)

    def test_stance_accepts_string_value(self):
        alignment = Alignment(user_id="u1", stance="OPPOSE")
        assert alignment.stance == Stance.OPPOSE

    def test_duplicate_proposition_ids_in_topic_rejected(self):
        with pytest.raises(ValidationError):
            TopicData(
                topic_id="t1",
                propositions=[make_proposition("p1", support=1), make_proposition("p1", oppose=1)],
            )


class TestAnalysisSnapshot:

    def test_construct_with_keywords(self):
        created = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        snapshot = AnalysisSnapshot(response_count=25, participant_count=12, created_at=created)

        assert (snapshot.response_count, snapshot.participant_count, snapshot.created_at) == (25, 12, created)

    def test_construct_positionally(self):
        created = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert AnalysisSnapshot(25, 12, created).created_at == created

    def test_negative_counter_rejected(self):
        with pytest.raises(ValidationError):
            AnalysisSnapshot(response_count=-1, participant_count=0, created_at=datetime.now(timezone.utc))


class TestPropositionHelpers:

    def test_total_alignments(self):
        assert make_proposition("p1", support=3, oppose=2, nuanced=1).total_alignments == 6

    def test_explanations_skip_blank_text(self):
        proposition = make_proposition(
            "p1",
            support=2,
            nuanced=2,
            support_texts=["Safer streets", "   "],
            nuanced_texts=["Only downtown"],
        )

        assert proposition.explanations() == ["Safer streets", "Only downtown"]
        assert proposition.explanations(Stance.NUANCED) == ["Only downtown"]
        assert proposition.explanations(Stance.OPPOSE) == []


class TestSynthesisResultSerialization:

    def test_from_dict_rebuilds_nested_types(self):
        data = {
            "agreement_zones": [{
                "proposition": "Parks matter",
                "agreement_percentage": 90,
                "supporting_evidence": ["Kids need space"],
                "participant_count": 9,
            }],
            "misunderstandings": [],
            "genuine_disagreements": [],
            "overall_consensus_score": 0.9,
        }

        result = SynthesisResult.from_dict(data)

        assert result.agreement_zones[0].agreement_percentage == 90
        assert result.to_dict() == data
