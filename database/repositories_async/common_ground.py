"""Async CommonGroundRepository - data access for the deliberation engine

Reads:
- Topic counters (discussion_topics)
- Propositions with their alignments
- Discussion responses
- Latest common-ground analysis and its snapshot

Writes:
- One common_ground_analyses row per completed analysis pass
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from config import get_logger
from database.repositories_async.base import BaseRepository
from deliberation.models import (
    Alignment,
    AnalysisSnapshot,
    Proposition,
    ResponseData,
    SynthesisResult,
    TopicCounters,
    TopicData,
)
from exceptions import DatabaseError, InvalidTopicDataError

logger = get_logger(__name__).bind(component="common_ground_repository")


class CommonGroundRepository(BaseRepository):
    """Implements the CommonGroundStore protocol over PostgreSQL"""

    async def get_topic_counters(self, topic_id: str) -> Optional[TopicCounters]:
        row = await self._fetchrow(
            """
            SELECT id, response_count, participant_count
            FROM discussion_topics
            WHERE id = $1
            """,
            topic_id,
        )
        if not row:
            return None

        return TopicCounters(
            topic_id=row["id"],
            response_count=row["response_count"],
            participant_count=row["participant_count"],
        )

    async def get_latest_snapshot(self, topic_id: str) -> Optional[AnalysisSnapshot]:
        row = await self._fetchrow(
            """
            SELECT response_count, participant_count, created_at
            FROM common_ground_analyses
            WHERE topic_id = $1
            ORDER BY created_at DESC
            LIMIT 1
            """,
            topic_id,
        )
        if not row:
            return None

        return AnalysisSnapshot(
            response_count=row["response_count"],
            participant_count=row["participant_count"],
            created_at=row["created_at"],
        )

    async def get_propositions(self, topic_id: str) -> List[Proposition]:
        """All propositions of a topic with their alignments

        Raises:
            InvalidTopicDataError: An alignment points at a proposition outside the topic
        """
        # Both reads must see the same snapshot or a concurrent alignment
        # insert shows up as an orphan
        async with self.transaction(isolation="repeatable_read", readonly=True) as conn:
            proposition_rows = await conn.fetch(
                """
                SELECT id, statement, support_count, oppose_count, nuanced_count, consensus_score
                FROM propositions
                WHERE topic_id = $1
                ORDER BY created_at, id
                """,
                topic_id,
            )
            alignment_rows = await conn.fetch(
                """
                SELECT a.proposition_id, a.user_id, a.stance, a.nuance_explanation
                FROM alignments a
                JOIN propositions p ON p.id = a.proposition_id
                WHERE p.topic_id = $1
                ORDER BY a.created_at, a.user_id
                """,
                topic_id,
            )

        alignments_by_proposition: Dict[str, List[Alignment]] = defaultdict(list)
        for row in alignment_rows:
            alignments_by_proposition[row["proposition_id"]].append(
                Alignment(
                    user_id=row["user_id"],
                    stance=row["stance"].upper(),
                    nuance_explanation=row["nuance_explanation"],
                )
            )

        proposition_ids = {row["id"] for row in proposition_rows}
        orphaned = set(alignments_by_proposition) - proposition_ids
        if orphaned:
            raise InvalidTopicDataError(
                f"alignments reference {len(orphaned)} proposition(s) outside the topic",
                topic_id=topic_id,
                field="alignments",
            )

        return [
            Proposition(
                id=row["id"],
                statement=row["statement"],
                support_count=row["support_count"],
                oppose_count=row["oppose_count"],
                nuanced_count=row["nuanced_count"],
                consensus_score=float(row["consensus_score"]) if row["consensus_score"] is not None else None,
                alignments=alignments_by_proposition.get(row["id"], []),
            )
            for row in proposition_rows
        ]

    async def get_responses(self, topic_id: str) -> List[ResponseData]:
        rows = await self._fetch(
            """
            SELECT id, author_id, content, contains_opinion, contains_factual_claims
            FROM responses
            WHERE topic_id = $1
            ORDER BY created_at
            """,
            topic_id,
        )
        return [
            ResponseData(
                id=row["id"],
                author_id=row["author_id"],
                content=row["content"],
                contains_opinion=row["contains_opinion"],
                contains_factual_claims=row["contains_factual_claims"],
            )
            for row in rows
        ]

    async def get_topic_data(self, topic_id: str) -> Optional[TopicData]:
        counters = await self.get_topic_counters(topic_id)
        if counters is None:
            return None

        return TopicData(
            topic_id=topic_id,
            propositions=await self.get_propositions(topic_id),
            responses=await self.get_responses(topic_id),
            participant_count=counters.participant_count,
        )

    async def save_analysis(
        self,
        topic_id: str,
        result: SynthesisResult,
        counters: TopicCounters,
    ) -> AnalysisSnapshot:
        """Persist a completed pass; the stored counters become the next baseline"""
        async with self.transaction() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO common_ground_analyses (
                    topic_id, version, response_count, participant_count,
                    overall_consensus_score, result
                )
                SELECT $1, COALESCE(MAX(version), 0) + 1, $2, $3, $4, $5::jsonb
                FROM common_ground_analyses
                WHERE topic_id = $1
                RETURNING version, created_at
                """,
                topic_id,
                counters.response_count,
                counters.participant_count,
                result.overall_consensus_score,
                result.to_dict(),
            )

        logger.info(
            "saved common ground analysis",
            topic_id=topic_id,
            version=row["version"],
            response_count=counters.response_count,
            participant_count=counters.participant_count,
        )

        return AnalysisSnapshot(
            response_count=counters.response_count,
            participant_count=counters.participant_count,
            created_at=row["created_at"],
        )

    async def get_latest_analysis(self, topic_id: str) -> Optional[Dict[str, Any]]:
        """Latest stored result as a response-ready dict, or None"""
        row = await self._fetchrow(
            """
            SELECT version, response_count, participant_count, result, created_at
            FROM common_ground_analyses
            WHERE topic_id = $1
            ORDER BY created_at DESC
            LIMIT 1
            """,
            topic_id,
        )
        if not row:
            return None

        # jsonb is decoded by the pool codec
        try:
            result = SynthesisResult.from_dict(row["result"])
        except (ValidationError, TypeError, AttributeError) as e:
            raise DatabaseError(
                "stored common ground analysis does not match the result shape",
                context={"topic_id": topic_id, "version": row["version"]},
            ) from e

        return {
            "topic_id": topic_id,
            "version": row["version"],
            "response_count": row["response_count"],
            "participant_count": row["participant_count"],
            "created_at": row["created_at"].isoformat(),
            **result.to_dict(),
        }
