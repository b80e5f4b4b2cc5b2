"""Quiz curriculum models: courses, modules, levels and questions.

Content is managed elsewhere; the wagering engine only reads it.
"""
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    ForeignKey,
    Text,
)
from sqlalchemy.orm import relationship
import uuid

from backend.database import Base
from backend.models.base import get_uuid_column


class QuizCourse(Base):
    __tablename__ = "quiz_courses"

    course_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    name = Column(String(120), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(16), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    modules = relationship("QuizModule", back_populates="course", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<QuizCourse(course_id={self.course_id}, name={self.name})>"


class QuizModule(Base):
    __tablename__ = "quiz_modules"

    module_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    course_id = get_uuid_column(ForeignKey("quiz_courses.course_id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    course = relationship("QuizCourse", back_populates="modules")
    levels = relationship("QuizLevel", back_populates="module", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<QuizModule(module_id={self.module_id}, name={self.name})>"


class QuizLevel(Base):
    __tablename__ = "quiz_levels"

    level_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    module_id = get_uuid_column(ForeignKey("quiz_modules.module_id", ondelete="CASCADE"), nullable=False, index=True)
    level = Column(Integer, nullable=False)  # Difficulty ordinal within the module
    name = Column(String(120), nullable=False)

    module = relationship("QuizModule", back_populates="levels")
    questions = relationship("QuizQuestion", back_populates="level", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<QuizLevel(level_id={self.level_id}, name={self.name}, level={self.level})>"


class QuizQuestion(Base):
    """Two-option question. ``correct_option`` is 'A' or 'B' and never leaves the server."""
    __tablename__ = "quiz_questions"

    question_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    level_id = get_uuid_column(ForeignKey("quiz_levels.level_id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    option_a = Column(String(255), nullable=False)
    option_b = Column(String(255), nullable=False)
    correct_option = Column(String(1), nullable=False)
    time_limit = Column(Integer, nullable=False, default=15)  # Seconds

    level = relationship("QuizLevel", back_populates="questions")

    def __repr__(self):
        return f"<QuizQuestion(question_id={self.question_id}, level_id={self.level_id})>"
