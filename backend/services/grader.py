"""Answer grading against the authoritative answer key.

Grading is a pure function of its inputs: no randomness, no clock, no I/O.
"""
from dataclasses import dataclass, field, asdict
from typing import Iterable, Protocol


class AnswerKey(Protocol):
    question_id: object
    correct_option: str


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: str
    submitted_option: str | None
    time_taken_seconds: float = 0.0


@dataclass(frozen=True)
class GradedAnswer:
    question_id: str
    submitted_option: str | None
    is_correct: bool
    time_taken_seconds: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class GradeResult:
    score: int
    total_questions: int
    graded_answers: list[GradedAnswer] = field(default_factory=list)

    @property
    def is_perfect(self) -> bool:
        return self.total_questions > 0 and self.score == self.total_questions


def _normalize_option(option: str | None) -> str | None:
    if option is None:
        return None
    return str(option).strip().upper()


def grade(questions: Iterable[AnswerKey], answers: Iterable[SubmittedAnswer]) -> GradeResult:
    """Score submitted answers.

    Args:
        questions: The game's frozen question set with correct options
        answers: Answers in the order the player submitted them

    Returns:
        GradeResult with one graded entry per submitted answer

    Rules:
        - An answer to a question outside the set grades incorrect.
        - A question answered more than once counts on its first answer only.
        - Options compare case-insensitively ('a' == 'A').
    """
    answer_key = {str(q.question_id): _normalize_option(q.correct_option) for q in questions}
    seen: set[str] = set()
    score = 0
    graded: list[GradedAnswer] = []

    for answer in answers:
        question_id = str(answer.question_id)
        submitted = _normalize_option(answer.submitted_option)
        expected = answer_key.get(question_id)
        is_correct = (
            expected is not None
            and question_id not in seen
            and submitted is not None
            and submitted == expected
        )
        seen.add(question_id)
        if is_correct:
            score += 1
        graded.append(GradedAnswer(
            question_id=question_id,
            submitted_option=submitted,
            is_correct=is_correct,
            time_taken_seconds=float(answer.time_taken_seconds or 0.0),
        ))

    return GradeResult(score=score, total_questions=len(answer_key), graded_answers=graded)
