"""Tests for QuestionPool."""
import random
import uuid

import pytest

from backend.services.question_pool import QuestionPool, public_question


class TestQuestionPool:

    @pytest.mark.asyncio
    async def test_count_and_fetch(self, db_session, level_factory):
        level = await level_factory(question_count=7)
        pool = QuestionPool(db_session)

        assert await pool.count_questions(level.level_id) == 7
        assert len(await pool.fetch_by_level(level.level_id)) == 7
        assert await pool.count_questions(uuid.uuid4()) == 0

    @pytest.mark.asyncio
    async def test_select_for_game_caps_and_shuffles(self, db_session, level_factory):
        """Should take at most ``cap`` distinct questions from the level."""
        level = await level_factory(question_count=12)
        pool = QuestionPool(db_session, rng=random.Random(7))

        selected = await pool.select_for_game(level.level_id, cap=10)

        assert len(selected) == 10
        assert len({q.question_id for q in selected}) == 10
        assert all(q.level_id == level.level_id for q in selected)

    @pytest.mark.asyncio
    async def test_select_for_game_with_fewer_than_cap(self, db_session, level_factory):
        level = await level_factory(question_count=5)
        pool = QuestionPool(db_session)

        assert len(await pool.select_for_game(level.level_id, cap=15)) == 5

    @pytest.mark.asyncio
    async def test_get_questions_preserves_frozen_order(self, db_session, level_factory):
        """Should return questions in the stored id order and skip unknown ids."""
        level = await level_factory(question_count=5)
        pool = QuestionPool(db_session)
        questions = await pool.fetch_by_level(level.level_id)
        ids = [str(q.question_id) for q in reversed(questions)]

        loaded = await pool.get_questions(ids[:3] + [str(uuid.uuid4())])

        assert [str(q.question_id) for q in loaded] == ids[:3]
        assert await pool.get_questions([]) == []

    @pytest.mark.asyncio
    async def test_public_question_hides_answer(self, db_session, level_factory):
        level = await level_factory(question_count=5)
        question = (await QuestionPool(db_session).fetch_by_level(level.level_id))[0]

        payload = public_question(question)

        assert "correct_option" not in payload
        assert payload["question_id"] == str(question.question_id)
        assert payload["time_limit"] == 15

    @pytest.mark.asyncio
    async def test_list_courses_includes_levels_with_counts(self, db_session, level_factory):
        level = await level_factory(question_count=6, name="Counting")
        pool = QuestionPool(db_session)

        courses = await pool.list_courses()

        levels = [
            lv
            for course in courses
            for module in course["modules"]
            for lv in module["levels"]
            if lv["level_id"] == str(level.level_id)
        ]
        assert len(levels) == 1
        assert levels[0]["name"] == "Counting"
        assert levels[0]["question_count"] == 6
