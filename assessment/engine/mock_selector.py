"""
Question selection for full-length mock tests.

Each subject gets two sections: Section A (single-correct MCQ) and
Section B (numerical/integer). Within a section, each difficulty bucket is
shuffled and filled up to its target while capping how many questions one
chapter may contribute to the subject. A short section is backfilled from
any remaining questions of its types with the chapter cap doubled.
"""

from __future__ import annotations

import random
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from config import Settings, get_settings
from assessment.core.enums import DIFFICULTY_ORDER, SUBJECT_ORDER, Difficulty, QuestionType, Subject
from assessment.engine.selector import ItemCandidate


@dataclass(frozen=True)
class SectionSpec:
    name: str
    question_types: frozenset[QuestionType]
    size: int
    difficulties: Mapping[Difficulty, int]


@dataclass(frozen=True)
class MockBlueprint:
    sections: tuple[SectionSpec, ...]
    max_per_chapter: int = 2

    @property
    def questions_per_subject(self) -> int:
        return sum(section.size for section in self.sections)

    @property
    def total_questions(self) -> int:
        return self.questions_per_subject * len(SUBJECT_ORDER)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "MockBlueprint":
        difficulty = config["difficulty"]
        return cls(
            sections=(
                SectionSpec(
                    name="A",
                    question_types=frozenset({QuestionType.MCQ_SINGLE}),
                    size=int(config["section_a_questions"]),
                    difficulties={Difficulty(k): int(v) for k, v in difficulty["section_a"].items()},
                ),
                SectionSpec(
                    name="B",
                    question_types=frozenset({QuestionType.NUMERICAL, QuestionType.INTEGER}),
                    size=int(config["section_b_questions"]),
                    difficulties={Difficulty(k): int(v) for k, v in difficulty["section_b"].items()},
                ),
            ),
            max_per_chapter=int(config["max_per_chapter"]),
        )

    @classmethod
    def default(cls, settings: Settings | None = None) -> "MockBlueprint":
        return cls.from_config((settings or get_settings()).get_mock_blueprint_config())


class MockTestSelector:
    """Blueprint-driven selection returning subject -> ordered ids (Section A first)."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.SystemRandom()

    def select(
        self, candidates: Iterable[ItemCandidate], blueprint: MockBlueprint
    ) -> dict[Subject, list[str]]:
        by_subject: dict[Subject, list[ItemCandidate]] = {s: [] for s in SUBJECT_ORDER}
        for candidate in candidates:
            by_subject.setdefault(candidate.subject, []).append(candidate)

        result: dict[Subject, list[str]] = {}
        for subject in SUBJECT_ORDER:
            result[subject] = self._select_subject(by_subject[subject], blueprint)
            if len(result[subject]) < blueprint.questions_per_subject:
                logger.warning(
                    f"Mock selection for {subject.value}: "
                    f"{len(result[subject])}/{blueprint.questions_per_subject}"
                )
        return result

    def _select_subject(
        self, candidates: Sequence[ItemCandidate], blueprint: MockBlueprint
    ) -> list[str]:
        used_chapters: Counter[str] = Counter()
        chosen: set[str] = set()
        ids: list[str] = []
        for section in blueprint.sections:
            ids.extend(
                self._select_section(candidates, section, blueprint.max_per_chapter, used_chapters, chosen)
            )
        return ids

    def _select_section(
        self,
        candidates: Sequence[ItemCandidate],
        section: SectionSpec,
        max_per_chapter: int,
        used_chapters: Counter[str],
        chosen: set[str],
    ) -> list[str]:
        available = [c for c in candidates if c.question_type in section.question_types]
        selected: list[str] = []

        def take(candidate: ItemCandidate) -> None:
            selected.append(candidate.id)
            chosen.add(candidate.id)
            used_chapters[candidate.chapter] += 1

        for difficulty in DIFFICULTY_ORDER:
            target = section.difficulties.get(difficulty, 0)
            bucket = [c for c in available if c.difficulty == difficulty]
            self._rng.shuffle(bucket)
            taken = 0
            for candidate in bucket:
                if taken >= target:
                    break
                if candidate.id in chosen or used_chapters[candidate.chapter] >= max_per_chapter:
                    continue
                take(candidate)
                taken += 1

        if len(selected) < section.size:
            relaxed_cap = max_per_chapter * 2
            pool = list(available)
            self._rng.shuffle(pool)
            for candidate in pool:
                if len(selected) >= section.size:
                    break
                if candidate.id in chosen or used_chapters[candidate.chapter] >= relaxed_cap:
                    continue
                take(candidate)

        return selected
