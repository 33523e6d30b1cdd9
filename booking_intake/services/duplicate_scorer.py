"""
Candidate duplicate scoring.

Compares a candidate against a caller-supplied snapshot of existing
shows. Scoring has two stages:
1. Weighted similarity over title, venue name, city and date, where an
   exact date carries the largest single weight
2. Date penalty: differing dates shrink the score, a missing date on
   either side is neutral
"""

from difflib import SequenceMatcher
from typing import List, Optional, Sequence, Tuple

import structlog

from booking_intake.models.candidate import Candidate, DuplicateMatch, ExistingRecord
from booking_intake.models.config import ScoringSettings
from booking_intake.utils.text import normalize_key

logger = structlog.get_logger()


class DuplicateScorer:
    """
    Score a candidate against existing records.

    Pure and deterministic: the existing records are never mutated and
    equal scores keep the input order.
    """

    def __init__(self, settings: Optional[ScoringSettings] = None):
        self.settings = settings or ScoringSettings()

    def score(
        self, candidate: Candidate, existing_records: Sequence[ExistingRecord]
    ) -> List[DuplicateMatch]:
        """
        Return matches at or above the acceptance threshold.

        Args:
            candidate: Candidate to check
            existing_records: Read-only snapshot of persisted shows

        Returns:
            DuplicateMatch list sorted descending by score
        """
        matches: List[DuplicateMatch] = []

        for record in tuple(existing_records):
            score, matched_fields = self.score_record(candidate, record)
            if score >= self.settings.threshold and score > 0.0:
                matches.append(
                    DuplicateMatch(
                        existing_record_id=record.id,
                        score=score,
                        matched_fields=matched_fields,
                    )
                )

        # sorted() is stable, ties keep input order
        matches = sorted(matches, key=lambda m: m.score, reverse=True)

        if matches:
            logger.debug(
                "duplicates_detected",
                candidate_id=candidate.candidate_id,
                count=len(matches),
                top_score=matches[0].score,
            )
        return matches

    def score_record(
        self, candidate: Candidate, record: ExistingRecord
    ) -> Tuple[float, List[str]]:
        """Composite score and matched field names for one record."""
        settings = self.settings
        matched: List[str] = []

        title = self.title_similarity(
            candidate.core.title.value or candidate.core.artist.value, record.title
        )
        if title > 0.0:
            matched.append("title")

        venue = self._containment(candidate.venue.name.value, record.venue_name)
        if venue > 0.0:
            matched.append("venue_name")

        city = 1.0 if self._same(candidate.venue.city.value, record.city) else 0.0
        if city > 0.0:
            matched.append("city")

        total_weight = settings.title_weight + settings.venue_weight + settings.city_weight
        weighted = (
            settings.title_weight * title
            + settings.venue_weight * venue
            + settings.city_weight * city
        )

        # a date missing on either side stays out of numerator and denominator
        candidate_date = candidate.core.date.value
        dated = bool(candidate_date and record.date)
        same_date = dated and candidate_date == record.date
        if dated:
            total_weight += settings.date_weight
        if same_date:
            weighted += settings.date_weight
            matched.append("date")

        score = weighted / total_weight
        if dated and not same_date:
            score *= settings.date_mismatch_factor

        return round(min(max(score, 0.0), 1.0), 4), matched

    def title_similarity(self, left: Optional[str], right: Optional[str]) -> float:
        """
        Similarity of two titles in [0, 1].

        Exact normalized match is 1.0, containment is the configured
        substring credit, otherwise the SequenceMatcher ratio counts only
        when it reaches the fuzzy floor.
        """
        a = normalize_key(left or "")
        b = normalize_key(right or "")
        if not a or not b:
            return 0.0
        if a == b:
            return 1.0
        if a in b or b in a:
            return self.settings.substring_similarity

        ratio = SequenceMatcher(None, a, b).ratio()
        if ratio >= self.settings.fuzzy_title_floor:
            return ratio
        return 0.0

    @staticmethod
    def _same(left: Optional[str], right: Optional[str]) -> bool:
        a = normalize_key(left or "")
        return bool(a) and a == normalize_key(right or "")

    def _containment(self, left: Optional[str], right: Optional[str]) -> float:
        a = normalize_key(left or "")
        b = normalize_key(right or "")
        if not a or not b:
            return 0.0
        if a == b:
            return 1.0
        if a in b or b in a:
            return self.settings.substring_similarity
        return 0.0
