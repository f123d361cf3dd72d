"""
Tests for the pattern synthesizer

Classification is checked in order agreement -> misunderstanding ->
disagreement, and each proposition lands in at most one category.
"""

from deliberation.synthesizer import (
    APPLICATION_LABEL,
    BRIEF_LABEL,
    CONTEXT_DEPENDENT_LABEL,
    DETAILED_LABEL,
    OPPOSITION_LEANING_LABEL,
    PatternSynthesizer,
    SCOPE_LABEL,
    SUPPORT_LEANING_LABEL,
    effective_consensus,
)
from fakes import make_proposition, make_topic


def synthesize(*propositions):
    return PatternSynthesizer().synthesize(make_topic(*propositions))


class TestAgreementZones:

    def test_low_participation_is_excluded(self):
        result = synthesize(
            make_proposition("p1", support=1),
            make_proposition("p2", support=10),
        )

        assert len(result.agreement_zones) == 1
        assert result.agreement_zones[0].proposition == "Statement p2"
        assert result.agreement_zones[0].agreement_percentage == 100
        assert result.agreement_zones[0].participant_count == 10

    def test_stored_consensus_takes_precedence(self):
        # 5 of 10 support, but the stored score says 0.8
        result = synthesize(make_proposition("p1", support=5, oppose=5, consensus_score=0.8))

        assert [z.agreement_percentage for z in result.agreement_zones] == [80]
        assert result.genuine_disagreements == []

    def test_sorted_by_agreement_descending(self):
        result = synthesize(
            make_proposition("p1", support=10, consensus_score=0.70),
            make_proposition("p2", support=10, consensus_score=0.90),
            make_proposition("p3", support=10, consensus_score=0.80),
        )

        assert [z.agreement_percentage for z in result.agreement_zones] == [90, 80, 70]

    def test_ties_keep_input_order(self):
        result = synthesize(
            make_proposition("p1", support=10, consensus_score=0.85),
            make_proposition("p2", support=10, consensus_score=0.85),
        )

        assert [z.proposition for z in result.agreement_zones] == ["Statement p1", "Statement p2"]

    def test_evidence_is_capped_at_three(self):
        result = synthesize(make_proposition(
            "p1", support=8, support_texts=["one", "two", "  ", "three", "four"],
        ))

        assert result.agreement_zones[0].supporting_evidence == ["one", "two", "three"]


class TestOverallConsensus:

    def test_mean_of_stored_scores(self):
        result = synthesize(
            make_proposition("p1", support=10, consensus_score=0.9),
            make_proposition("p2", support=6, oppose=4, consensus_score=0.6),
        )
        assert result.overall_consensus_score == 0.75

    def test_derived_when_no_stored_score(self):
        assert effective_consensus(make_proposition("p1", support=3, oppose=1)) == 0.75

    def test_empty_topic_has_no_score(self):
        result = synthesize()

        assert result.overall_consensus_score is None
        assert result.agreement_zones == []
        assert result.misunderstandings == []
        assert result.genuine_disagreements == []

    def test_only_low_participation_has_no_score(self):
        assert synthesize(make_proposition("p1", support=2)).overall_consensus_score is None


class TestMisunderstandings:

    def test_keyword_groups(self):
        result = synthesize(make_proposition(
            "p1",
            support=1,
            nuanced=4,
            nuanced_texts=[
                "I support it if funding is secured",
                "I would oppose it unless exemptions exist",
                "Depends on the neighbourhood",
                "Depends on timing",
            ],
        ))

        (misunderstanding,) = result.misunderstandings
        assert misunderstanding.topic == "Statement p1"
        assert [(i.label, i.participant_count) for i in misunderstanding.interpretations] == [
            (SUPPORT_LEANING_LABEL, 1),
            (OPPOSITION_LEANING_LABEL, 1),
            (CONTEXT_DEPENDENT_LABEL, 2),
        ]
        assert "4 nuanced responses" in misunderstanding.clarification
        assert "3 distinct interpretations" in misunderstanding.clarification

    def test_length_split_when_keywords_do_not_separate(self):
        result = synthesize(make_proposition(
            "p1",
            nuanced=5,
            nuanced_texts=[
                "Maybe",
                "Only in summer",
                "It really depends on how the rule is enforced locally",
            ],
        ))

        interpretations = result.misunderstandings[0].interpretations
        assert [(i.label, i.participant_count) for i in interpretations] == [
            (BRIEF_LABEL, 1),
            (DETAILED_LABEL, 2),
        ]

    def test_equally_long_texts_are_never_brief(self):
        result = synthesize(make_proposition(
            "p1",
            nuanced=3,
            nuanced_texts=["Only in summer", "Only near schools", "Not on weekends"],
        ))

        interpretations = result.misunderstandings[0].interpretations
        assert BRIEF_LABEL not in [i.label for i in interpretations]
        assert [(i.label, i.participant_count) for i in interpretations] == [
            (SCOPE_LABEL, 2),
            (APPLICATION_LABEL, 1),
        ]

    def test_split_is_by_word_count_not_position(self):
        result = synthesize(make_proposition(
            "p1",
            nuanced=4,
            nuanced_texts=[
                "It really depends on how the rule is enforced locally",
                "Maybe",
                "Only if the council publishes the budget first",
                "Unsure",
            ],
        ))

        interpretations = result.misunderstandings[0].interpretations
        assert [(i.label, i.participant_count) for i in interpretations] == [
            (BRIEF_LABEL, 2),
            (DETAILED_LABEL, 2),
        ]

    def test_count_split_without_texts(self):
        result = synthesize(make_proposition("p1", nuanced=5))

        interpretations = result.misunderstandings[0].interpretations
        assert [(i.label, i.participant_count) for i in interpretations] == [
            (SCOPE_LABEL, 3),
            (APPLICATION_LABEL, 2),
        ]

    def test_only_nuanced_explanations_are_grouped(self):
        result = synthesize(make_proposition(
            "p1",
            oppose=1,
            nuanced=4,
            oppose_texts=["I oppose this entirely"],
        ))

        labels = [i.label for i in result.misunderstandings[0].interpretations]
        assert OPPOSITION_LEANING_LABEL not in labels


class TestGenuineDisagreements:

    def test_even_split(self):
        result = synthesize(make_proposition(
            "p1", support=5, oppose=5, support_texts=["Safer streets"], oppose_texts=["Too costly"],
        ))

        (disagreement,) = result.genuine_disagreements
        assert disagreement.proposition_id == "p1"
        assert disagreement.polarization_score == 1.0
        assert disagreement.total_participants == 10
        assert [v.reasoning for v in disagreement.viewpoints] == [["Safer streets"], ["Too costly"]]
        assert disagreement.underlying_values is None

    def test_no_placeholder_reasoning(self):
        result = synthesize(make_proposition("p1", support=5, oppose=5))

        assert all(v.reasoning == [] for v in result.genuine_disagreements[0].viewpoints)

    def test_incomparable_sides_are_not_disagreement(self):
        # 7 vs 3 passes the side floor but falls under half
        result = synthesize(make_proposition("p1", support=7, oppose=3, consensus_score=0.5))
        assert result.genuine_disagreements == []

    def test_moderate_nuance_blocks_disagreement(self):
        result = synthesize(make_proposition("p1", support=4, oppose=3, nuanced=3, consensus_score=0.5))

        assert result.genuine_disagreements == []
        assert result.misunderstandings == []


class TestClassification:

    def test_each_proposition_in_at_most_one_category(self):
        propositions = [
            make_proposition("agree", support=9, oppose=1),
            make_proposition("unclear", support=1, nuanced=9),
            make_proposition("split", support=5, oppose=5),
            make_proposition("quiet", support=1, oppose=1),
        ]
        result = synthesize(*propositions)

        statements = (
            [z.proposition for z in result.agreement_zones]
            + [m.topic for m in result.misunderstandings]
            + [d.proposition for d in result.genuine_disagreements]
        )
        assert sorted(statements) == ["Statement agree", "Statement split", "Statement unclear"]

    def test_deterministic(self):
        propositions = [
            make_proposition("p1", support=9, oppose=1, support_texts=["yes"]),
            make_proposition("p2", nuanced=6, nuanced_texts=["only if", "it depends on the area"]),
            make_proposition("p3", support=5, oppose=4),
        ]

        assert synthesize(*propositions).to_dict() == synthesize(*propositions).to_dict()
