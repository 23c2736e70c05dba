"""Relevance scoring of fetched records.

Each weighted column earns the score of the best tier its value reaches:

    exact     value == term                   exact    * weight
    prefix    value starts with term          prefix   * weight * prefix_boost
    contains  term occurs in value            contains * weight
    fuzzy     edit distance d <= tolerance    max(0, fuzzy - penalty * d) * weight

The fuzzy distance is measured against the whole value and each of its
words, whichever is closest. Column scores are summed, passed through the
optional custom hook and finally multiplied by the recency factor.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from tablefuzz.search.query import SearchQuery
from tablefuzz.utils.matching import MatchTier, classify_match

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnScore:
    """Score contribution of a single column, kept in debug mode."""

    column: str
    tier: MatchTier
    weight: float
    score: float
    distance: int | None = None


@dataclass
class ScoredResult:
    """A record with its relevance and later annotations."""

    record: Any
    score: float = 0.0
    position: int = 0
    column_scores: list[ColumnScore] | None = None
    highlights: dict[str, str] | None = None
    source: str | None = None
    debug: dict[str, Any] | None = field(default=None, repr=False)

    def get(self, column: str, default: Any = None) -> Any:
        return self.record.get(column, default)


def _to_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        dt = datetime.fromisoformat(value.strip())
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def recency_factor(value: Any, multiplier: float, days: int, now: datetime | None = None) -> float:
    """Linear decay from ``multiplier`` at age 0 to 1.0 at ``days`` old.

    Missing or unparseable dates give 1.0.
    """
    try:
        dt = _to_datetime(value)
    except (ValueError, OverflowError, OSError) as e:
        log.debug("Ignoring unparseable recency value %r: %s", value, e)
        return 1.0
    if dt is None or days <= 0:
        return 1.0
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    age = max(0.0, (now - dt).total_seconds() / 86400)
    if age >= days:
        return 1.0
    return 1.0 + (multiplier - 1.0) * (1.0 - age / days)


def _identity_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


class RelevanceScorer:
    """Scores and orders records for one query."""

    def __init__(self, query: SearchQuery, now: datetime | None = None) -> None:
        self.query = query
        self.now = now
        self.processor = query.term_processor()
        self.term = self.processor.normalize_value(query.processed_term)

    def column_score(self, column: str, weight: float, value: Any) -> ColumnScore:
        if value is None or not self.term:
            return ColumnScore(column, MatchTier.NONE, weight, 0.0)
        text = self.processor.normalize_value(str(value))
        tier, distance = classify_match(
            self.term, text, self.query.typo_tolerance, self.query.costs
        )
        w = self.query.scoring
        if tier is MatchTier.EXACT:
            score = w.exact * weight
        elif tier is MatchTier.PREFIX:
            score = w.prefix * weight * self.query.prefix_boost
        elif tier is MatchTier.CONTAINS:
            score = w.contains * weight
        elif tier is MatchTier.FUZZY:
            score = max(0.0, w.fuzzy - w.fuzzy_penalty * distance) * weight
        else:
            score = 0.0
        return ColumnScore(column, tier, weight, score, distance)

    def score(self, record: Any, position: int = 0) -> ScoredResult:
        columns = [
            self.column_score(column, weight, record.get(column))
            for column, weight in self.query.columns
        ]
        total = sum(c.score for c in columns)

        if self.query.custom_score is not None:
            total = float(self.query.custom_score(record, total))

        recency = self.query.recency
        if recency is not None:
            total *= recency_factor(
                record.get(recency.column), recency.multiplier, recency.days, self.now
            )

        return ScoredResult(
            record=record,
            score=total,
            position=position,
            column_scores=columns if self.query.debug else None,
        )

    def rank(self, records: Iterable[Any]) -> list[ScoredResult]:
        """Score records and sort them by descending score.

        Ties keep input order unless stable ranking adds the identity column
        as a secondary key. Queries with explicit sort keys keep input order.
        """
        if not self.query.with_relevance:
            return [ScoredResult(record=r, position=i) for i, r in enumerate(records)]

        results = [self.score(r, i) for i, r in enumerate(records)]
        if self.query.sort_by:
            # explicit ordering was applied by the backend
            return results
        if self.query.stable_ranking:
            ident = self.query.identity_column
            results.sort(key=lambda r: (-r.score, _identity_key(r.get(ident))))
        else:
            results.sort(key=lambda r: -r.score)
        return results
