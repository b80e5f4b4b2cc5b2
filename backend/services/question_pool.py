"""Question pool: read-only access to quiz content for game setup and grading."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload
from uuid import UUID
import logging
import random

from backend.models.quiz_content import QuizCourse, QuizModule, QuizLevel, QuizQuestion

logger = logging.getLogger(__name__)


class QuestionPool:
    """Supplies shuffled, size-bounded question sets for a level."""

    def __init__(self, db: AsyncSession, rng: random.Random | None = None):
        self.db = db
        self._rng = rng or random.SystemRandom()

    async def get_level(self, level_id: UUID) -> QuizLevel | None:
        result = await self.db.execute(
            select(QuizLevel).where(QuizLevel.level_id == level_id)
        )
        return result.scalar_one_or_none()

    async def count_questions(self, level_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(QuizQuestion.question_id)).where(QuizQuestion.level_id == level_id)
        )
        return result.scalar() or 0

    async def fetch_by_level(self, level_id: UUID) -> list[QuizQuestion]:
        """All questions of a level in a stable order."""
        result = await self.db.execute(
            select(QuizQuestion)
            .where(QuizQuestion.level_id == level_id)
            .order_by(QuizQuestion.question_id)
        )
        return list(result.scalars().all())

    async def select_for_game(self, level_id: UUID, cap: int) -> list[QuizQuestion]:
        """Shuffle the level's questions and take at most ``cap`` of them."""
        questions = await self.fetch_by_level(level_id)
        self._rng.shuffle(questions)
        selected = questions[:cap]
        logger.debug(f"Selected {len(selected)}/{len(questions)} questions from level {level_id}")
        return selected

    async def get_questions(self, question_ids: list[str]) -> list[QuizQuestion]:
        """Load questions by id, returned in the order of ``question_ids``.

        Ids that no longer resolve are skipped.
        """
        if not question_ids:
            return []
        result = await self.db.execute(
            select(QuizQuestion).where(QuizQuestion.question_id.in_([UUID(qid) for qid in question_ids]))
        )
        by_id = {str(q.question_id): q for q in result.scalars().all()}
        return [by_id[qid] for qid in question_ids if qid in by_id]

    async def list_courses(self) -> list[dict]:
        """Active courses with their active modules, levels and question counts."""
        counts_subq = (
            select(
                QuizQuestion.level_id,
                func.count(QuizQuestion.question_id).label("question_count"),
            )
            .group_by(QuizQuestion.level_id)
            .subquery()
        )
        count_result = await self.db.execute(select(counts_subq.c.level_id, counts_subq.c.question_count))
        question_counts = {row.level_id: row.question_count for row in count_result.all()}

        result = await self.db.execute(
            select(QuizCourse)
            .where(QuizCourse.is_active.is_(True))
            .options(selectinload(QuizCourse.modules).selectinload(QuizModule.levels))
            .order_by(QuizCourse.name)
        )
        courses = []
        for course in result.scalars().all():
            modules = []
            for module in sorted(course.modules, key=lambda m: m.name):
                if not module.is_active:
                    continue
                modules.append({
                    'module_id': str(module.module_id),
                    'name': module.name,
                    'description': module.description,
                    'levels': [
                        {
                            'level_id': str(level.level_id),
                            'level': level.level,
                            'name': level.name,
                            'question_count': question_counts.get(level.level_id, 0),
                        }
                        for level in sorted(module.levels, key=lambda lv: lv.level)
                    ],
                })
            courses.append({
                'course_id': str(course.course_id),
                'name': course.name,
                'description': course.description,
                'icon': course.icon,
                'modules': modules,
            })
        return courses


def public_question(question: QuizQuestion) -> dict:
    """Question payload safe to send to players (no correct option)."""
    return {
        'question_id': str(question.question_id),
        'question': question.question,
        'option_a': question.option_a,
        'option_b': question.option_b,
        'time_limit': question.time_limit,
    }
