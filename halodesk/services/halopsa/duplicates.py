"""Heuristic duplicate detection for HaloPSA tickets.

Candidates are recent tickets from the same client whose summaries overlap
with the source ticket's summary. Overlap is the Jaccard similarity of the
lower-cased word sets, nudged upwards when category or priority agree. The
ranking is advisory: false positives and misses are both expected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from halodesk.core.logging import log_debug
from halodesk.services.halopsa.entities import Ticket
from halodesk.services.halopsa.repository import EntityRepository

DEFAULT_HOURS_LOOKBACK = 72
DEFAULT_SIMILARITY_THRESHOLD = 0.7
CANDIDATE_LIMIT = 100
CATEGORY_BOOST = 0.10
PRIORITY_BOOST = 0.05


@dataclass(slots=True)
class DuplicateCandidate:
    ticket_id: int
    summary: str
    status: str | None
    created: str | None
    similarity_score: float
    matching_words: list[str] = field(default_factory=list)


def tokenize_summary(summary: str | None) -> frozenset[str]:
    if not summary:
        return frozenset()
    return frozenset(summary.lower().split())


def jaccard_similarity(left: frozenset[str], right: frozenset[str]) -> float:
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def score_candidate(source: Ticket, candidate: Ticket, source_words: frozenset[str], candidate_words: frozenset[str]) -> float:
    score = jaccard_similarity(source_words, candidate_words)
    if source.category1 and candidate.category1 == source.category1:
        score += CATEGORY_BOOST
    if source.priority_id and candidate.priority_id == source.priority_id:
        score += PRIORITY_BOOST
    return max(0.0, min(score, 1.0))


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def find_duplicates(
    tickets: EntityRepository[Ticket],
    ticket_id: int,
    *,
    hours_lookback: int = DEFAULT_HOURS_LOOKBACK,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[DuplicateCandidate]:
    source = await tickets.get(ticket_id)
    if not source.client_id:
        log_debug("Skipping duplicate search for ticket without client", ticket_id=ticket_id)
        return []

    start_date = _now() - timedelta(hours=hours_lookback)
    candidates = await tickets.list(
        {
            "client_id": source.client_id,
            "startdate": start_date.isoformat(),
            "count": CANDIDATE_LIMIT,
        }
    )

    source_words = tokenize_summary(source.summary)
    duplicates: list[DuplicateCandidate] = []
    for candidate in candidates:
        if candidate.id == ticket_id:
            continue
        candidate_words = tokenize_summary(candidate.summary)
        if not source_words or not candidate_words:
            continue
        score = score_candidate(source, candidate, source_words, candidate_words)
        # Rounded before comparing so float noise cannot drop an exact threshold hit.
        if round(score, 9) < similarity_threshold:
            continue
        duplicates.append(
            DuplicateCandidate(
                ticket_id=candidate.id,
                summary=candidate.summary,
                status=candidate.status_name,
                created=candidate.date_created,
                similarity_score=round(score, 2),
                matching_words=sorted(source_words & candidate_words),
            )
        )

    duplicates.sort(key=lambda item: item.similarity_score, reverse=True)
    log_debug(
        "Duplicate search complete",
        ticket_id=ticket_id,
        candidates=len(candidates),
        matches=len(duplicates),
    )
    return duplicates
