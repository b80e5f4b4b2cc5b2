"""Tests for answer grading."""
from dataclasses import dataclass
import uuid

from backend.services.grader import SubmittedAnswer, grade


@dataclass
class Key:
    question_id: uuid.UUID
    correct_option: str


def _questions(*options):
    return [Key(uuid.uuid4(), option) for option in options]


class TestGrade:

    def test_all_correct_is_perfect(self):
        questions = _questions("A", "B", "A")
        answers = [SubmittedAnswer(str(q.question_id), q.correct_option, 1.5) for q in questions]

        result = grade(questions, answers)

        assert result.score == 3
        assert result.total_questions == 3
        assert result.is_perfect
        assert all(a.is_correct for a in result.graded_answers)

    def test_wrong_and_missing_answers(self):
        questions = _questions("A", "B", "A")
        answers = [
            SubmittedAnswer(str(questions[0].question_id), "A"),
            SubmittedAnswer(str(questions[1].question_id), "A"),
            SubmittedAnswer(str(questions[2].question_id), None),
        ]

        result = grade(questions, answers)

        assert result.score == 1
        assert not result.is_perfect
        assert [a.is_correct for a in result.graded_answers] == [True, False, False]

    def test_options_compare_case_insensitively(self):
        questions = _questions("B")
        result = grade(questions, [SubmittedAnswer(str(questions[0].question_id), "b")])

        assert result.score == 1
        assert result.graded_answers[0].submitted_option == "B"

    def test_unknown_question_grades_incorrect(self):
        questions = _questions("A")
        answers = [SubmittedAnswer(str(uuid.uuid4()), "A")]

        result = grade(questions, answers)

        assert result.score == 0
        assert result.graded_answers[0].is_correct is False

    def test_duplicate_answer_counts_once(self):
        questions = _questions("A", "B")
        qid = str(questions[0].question_id)
        answers = [SubmittedAnswer(qid, "A"), SubmittedAnswer(qid, "A"), SubmittedAnswer(qid, "A")]

        result = grade(questions, answers)

        assert result.score == 1
        assert [a.is_correct for a in result.graded_answers] == [True, False, False]

    def test_answering_fewer_questions_is_not_perfect(self):
        questions = _questions("A", "B", "A", "B", "A")
        answers = [SubmittedAnswer(str(questions[0].question_id), "A")]

        result = grade(questions, answers)

        assert result.score == 1
        assert result.total_questions == 5
        assert not result.is_perfect

    def test_missing_time_counts_as_zero(self):
        questions = _questions("A")
        result = grade(questions, [SubmittedAnswer(str(questions[0].question_id), "A", None)])

        assert result.graded_answers[0].time_taken_seconds == 0.0

    def test_grading_is_deterministic(self):
        questions = _questions("A", "B", "B", "A")
        answers = [SubmittedAnswer(str(q.question_id), "A", 0.7) for q in questions]

        first = grade(questions, answers)
        second = grade(questions, answers)

        assert first == second
        assert first.score == 2

    def test_graded_answer_to_dict(self):
        questions = _questions("A")
        qid = str(questions[0].question_id)
        result = grade(questions, [SubmittedAnswer(qid, "a", 3.0)])

        assert result.graded_answers[0].to_dict() == {
            "question_id": qid,
            "submitted_option": "A",
            "is_correct": True,
            "time_taken_seconds": 3.0,
        }
