"""
Question selection for diagnostic sessions.

Produces a balanced, concept-diverse set of item ids under subject and
difficulty quotas:

1. Candidates are ordered by frequency weight, then priority score (both
   descending). This order is the preference order inside every bucket.
2. Candidates are bucketed by (subject, difficulty).
3. Per subject, in fixed order, each difficulty gets a target of
   round(difficulty_quota / total * subject_quota). Buckets are walked in
   preference order, skipping any concept already used in this session,
   until the difficulty target or the subject target is reached.
4. A subject that is still short is backfilled from all of its buckets.
5. The final list is shuffled so presentation order does not reveal the
   subject/difficulty grouping.

The subject target is authoritative; difficulty targets may be off by one
after rounding and the backfill reconciles that.
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from config import Settings, get_settings
from assessment.core.enums import DIFFICULTY_ORDER, SUBJECT_ORDER, Difficulty, QuestionType, Subject
from assessment.core.errors import QuotaError


@dataclass(frozen=True)
class ItemCandidate:
    """The selection-relevant view of an active item."""

    id: str
    subject: Subject
    difficulty: Difficulty
    concept: str
    chapter: str = ""
    question_type: QuestionType = QuestionType.MCQ_SINGLE
    frequency_weight: float = 1.0
    priority_score: float = 1.0


def preference_key(candidate: ItemCandidate) -> tuple[float, float]:
    return (-candidate.frequency_weight, -candidate.priority_score)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class SelectionQuota:
    """Target counts per subject and per difficulty, each summing to ``total``."""

    total: int
    subjects: Mapping[Subject, int]
    difficulties: Mapping[Difficulty, int]

    def __post_init__(self) -> None:
        if self.total < 0:
            raise QuotaError("total must not be negative")
        for name, partition in (("subject", self.subjects), ("difficulty", self.difficulties)):
            if any(count < 0 for count in partition.values()):
                raise QuotaError(f"{name} targets must not be negative")
            if sum(partition.values()) != self.total:
                raise QuotaError(
                    f"{name} targets sum to {sum(partition.values())}, expected {self.total}"
                )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "SelectionQuota":
        """Build from ``{"total": n, "subjects": {...}, "difficulties": {...}}`` with string keys."""
        return cls(
            total=int(config["total"]),
            subjects={Subject(k): int(v) for k, v in config["subjects"].items()},
            difficulties={Difficulty(k): int(v) for k, v in config["difficulties"].items()},
        )

    @classmethod
    def default(cls, settings: Settings | None = None) -> "SelectionQuota":
        return cls.from_config((settings or get_settings()).get_diagnostic_quota_config())

    def subject_target(self, subject: Subject) -> int:
        return self.subjects.get(subject, 0)

    def difficulty_target(self, subject: Subject, difficulty: Difficulty) -> int:
        """Per-subject share of a difficulty quota, rounded half up."""
        if self.total == 0:
            return 0
        share = self.difficulties.get(difficulty, 0) / self.total * self.subject_target(subject)
        return round_half_up(share)


@dataclass
class SelectionResult:
    """
    Selected ids plus the information needed to detect a short selection.

    ``len(result) < result.requested`` whenever the store could not satisfy
    the quota; ``shortfall_by_subject`` says where.
    """

    item_ids: list[str]
    requested: int
    by_subject: dict[Subject, int] = field(default_factory=dict)
    shortfall_by_subject: dict[Subject, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.item_ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self.item_ids)

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - len(self.item_ids))

    @property
    def is_short(self) -> bool:
        return self.shortfall > 0

    @property
    def is_empty(self) -> bool:
        return not self.item_ids


class QuestionSelector:
    """
    Concept-diverse quota selection over pre-bucketed candidate pools.

    Read-only: takes candidates from the item store and returns ids.
    """

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.SystemRandom()

    def select(self, candidates: Iterable[ItemCandidate], quota: SelectionQuota) -> SelectionResult:
        pools = self._bucket(sorted(candidates, key=preference_key))

        selected: list[str] = []
        chosen: set[str] = set()
        used_concepts: set[str] = set()
        by_subject: dict[Subject, int] = {}
        shortfall: dict[Subject, int] = {}

        def take(candidate: ItemCandidate) -> None:
            selected.append(candidate.id)
            chosen.add(candidate.id)
            used_concepts.add(candidate.concept)

        for subject in SUBJECT_ORDER:
            target = quota.subject_target(subject)
            picked = 0

            # Proportional pass
            for difficulty in DIFFICULTY_ORDER:
                difficulty_target = quota.difficulty_target(subject, difficulty)
                taken = 0
                for candidate in pools.get((subject, difficulty), ()):
                    if taken >= difficulty_target or picked >= target:
                        break
                    if candidate.id in chosen or candidate.concept in used_concepts:
                        continue
                    take(candidate)
                    taken += 1
                    picked += 1

            # Backfill pass
            if picked < target:
                for difficulty in DIFFICULTY_ORDER:
                    for candidate in pools.get((subject, difficulty), ()):
                        if picked >= target:
                            break
                        if candidate.id in chosen or candidate.concept in used_concepts:
                            continue
                        take(candidate)
                        picked += 1

            by_subject[subject] = picked
            if picked < target:
                shortfall[subject] = target - picked

        self._rng.shuffle(selected)

        result = SelectionResult(
            item_ids=selected,
            requested=quota.total,
            by_subject=by_subject,
            shortfall_by_subject=shortfall,
        )
        if result.is_short:
            logger.warning(
                f"Selection short by {result.shortfall} of {quota.total}: "
                + ", ".join(f"{s.value}={n}" for s, n in shortfall.items())
            )
        else:
            logger.debug(f"Selected {len(result)} items")
        return result

    @staticmethod
    def _bucket(
        ordered: list[ItemCandidate],
    ) -> dict[tuple[Subject, Difficulty], list[ItemCandidate]]:
        pools: dict[tuple[Subject, Difficulty], list[ItemCandidate]] = {}
        for candidate in ordered:
            pools.setdefault((candidate.subject, candidate.difficulty), []).append(candidate)
        return pools
