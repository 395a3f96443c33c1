"""
QuestexService - Service Layer

Stateless service interface for Questex's core operations: parse raw
question text, convert it to LaTeX, store it, and browse what is stored.
The CLI is a thin layer over this class; every method returns a
ServiceResult instead of raising, so a web layer can serialize it directly.

Usage:
    service = QuestexService(provider="gemini")
    result = service.parse_questions(raw_text, question_type="MCQ")
    if result.success:
        service.save_questions(result.data["parsed"], "MCQ", course_id)
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import Config
from core.errors import QuestexError
from core.latex_enhancer import enhance_question_with_latex
from core.math_renderer import MathRenderer
from core.question_parser import ParsedQuestion, QuestionParser, QuestionType, convert_question
from core.question_splitter import QuestionSplitter
from models.llm_manager import LLMManager
from storage.database import Database

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """Generic result wrapper for service operations.

    Provides consistent response format across all service methods.
    """

    success: bool
    message: str = ""
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class QuestexService:
    """Stateless service layer for Questex operations.

    Example:
        service = QuestexService(provider="ollama")
        result = service.get_questions(question_type="MCQ")
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        db_path: Optional[Path] = None,
        llm=None,
        renderer: Optional[MathRenderer] = None,
    ):
        """Initialize service.

        Args:
            provider: LLM provider ("gemini", "deepseek", "ollama").
                      Defaults to Config.LLM_PROVIDER
            db_path: SQLite database path. Defaults to Config.DB_PATH
            llm: Pre-built LLM manager; created lazily from provider when needed
            renderer: Math renderer. Defaults to MathRenderer()
        """
        self.provider = provider or Config.LLM_PROVIDER
        self.db_path = db_path
        self._llm = llm
        self.renderer = renderer or MathRenderer()

    @property
    def llm(self):
        """LLM manager, only built when AI parsing is requested."""
        if self._llm is None:
            self._llm = LLMManager(provider=self.provider)
        return self._llm

    @contextmanager
    def _database(self):
        if self.db_path is None:
            Config.ensure_dirs()
        with Database(self.db_path) as db:
            db.initialize()
            yield db

    def initialize(self) -> ServiceResult:
        """Create data directories and the database schema."""
        try:
            with self._database():
                pass
            return ServiceResult(success=True, message="Database initialized")
        except (QuestexError, OSError) as e:
            return ServiceResult(success=False, error=str(e))

    # =========================================================================
    # PARSING & CONVERSION
    # =========================================================================

    def parse_questions(
        self, raw_text: str, question_type: str = "MCQ", use_ai: bool = True
    ) -> ServiceResult:
        """Parse a raw blob and convert every question to LaTeX.

        Args:
            raw_text: Questions separated by "---", options after a "-" line
            question_type: Question type hint for the AI parser
            use_ai: Parse with the LLM provider instead of the local splitter

        Returns:
            ServiceResult with data["parsed"] (List[ParsedQuestion]) and
            data["converted"] (List[ConvertedQuestion])
        """
        if not raw_text or not raw_text.strip():
            return ServiceResult(
                success=True,
                message="Nothing to process",
                data={"parsed": [], "converted": [], "count": 0},
            )

        try:
            if use_ai:
                parser = QuestionParser(llm=self.llm)
                parsed = parser.parse_with_ai(raw_text, question_type)
            else:
                parsed = QuestionParser().parse_locally(raw_text)

            converted = [convert_question(q.question_statement, q.options) for q in parsed]

            return ServiceResult(
                success=True,
                message=f"Parsed {len(parsed)} questions",
                data={"parsed": parsed, "converted": converted, "count": len(parsed)},
            )

        except QuestexError as e:
            logger.error(f"Question parsing failed: {e}")
            return ServiceResult(success=False, error=str(e))

    def convert_text(self, text: str) -> ServiceResult:
        """Convert shorthand math in a single text to LaTeX."""
        return ServiceResult(
            success=True,
            message="Converted",
            data={"latex": enhance_question_with_latex(text)},
        )

    def render_question(self, statement: str, html: bool = False) -> ServiceResult:
        """Render a stored statement to typed segments, or to HTML.

        Statements that still carry the "-" options separator are split, and
        each labeled option is rendered on its own.
        """
        splitter = QuestionSplitter()
        body, options_text = splitter.split_statement_and_options(statement)
        options = splitter.parse_options(options_text) if options_text else []

        if html:
            data = {
                "statement": self.renderer.render_html(body),
                "options": [(opt.label, self.renderer.render_html(opt.text)) for opt in options],
            }
        else:
            data = {
                "statement": self.renderer.render(body),
                "options": [(opt.label, self.renderer.render(opt.text)) for opt in options],
            }

        fallbacks = 0
        if not html:
            fallbacks = sum(1 for seg in data["statement"] if seg.is_fallback)
            fallbacks += sum(1 for _, segs in data["options"] for seg in segs if seg.is_fallback)
        data["fallbacks"] = fallbacks

        return ServiceResult(success=True, message="Rendered", data=data)

    # =========================================================================
    # QUESTION STORAGE
    # =========================================================================

    def save_questions(
        self,
        questions: List[ParsedQuestion],
        question_type: str,
        course_id: Optional[str],
    ) -> ServiceResult:
        """Convert and store parsed questions under a course.

        Statements and options are run through the LaTeX pipeline. Options
        are kept only for choice questions (MCQ, MSQ).
        """
        if not course_id:
            return ServiceResult(success=False, error="Please select a course before saving")
        if not questions:
            return ServiceResult(success=False, error="No questions to save")

        try:
            qtype = QuestionType.from_value(question_type)
        except ValueError as e:
            return ServiceResult(success=False, error=str(e))

        records = []
        for question in questions:
            options = question.options if qtype.has_options else None
            converted = convert_question(question.question_statement, options)
            records.append(
                {
                    "question_type": qtype.value,
                    "question_statement": converted.statement,
                    "options": list(converted.options) if converted.options is not None else None,
                    "course_id": course_id,
                }
            )

        try:
            with self._database() as db:
                if not db.get_course(course_id):
                    return ServiceResult(success=False, error=f"Course '{course_id}' not found")
                ids = db.save_questions(records)

            return ServiceResult(
                success=True,
                message=f"Saved {len(ids)} questions",
                data={"ids": ids, "count": len(ids), "course_id": course_id},
            )

        except QuestexError as e:
            return ServiceResult(success=False, error=str(e))

    def get_questions(self, question_type: Optional[str] = None) -> ServiceResult:
        """List stored questions, newest first."""
        try:
            with self._database() as db:
                questions = db.get_questions(question_type)
            return ServiceResult(
                success=True,
                message=f"Found {len(questions)} questions",
                data={"questions": questions, "count": len(questions)},
            )
        except QuestexError as e:
            return ServiceResult(success=False, error=str(e))

    def delete_question(self, question_id: str) -> ServiceResult:
        """Delete a stored question."""
        try:
            with self._database() as db:
                deleted = db.delete_question(question_id)
            if not deleted:
                return ServiceResult(success=False, error=f"Question '{question_id}' not found")
            return ServiceResult(success=True, message=f"Deleted question {question_id}")
        except QuestexError as e:
            return ServiceResult(success=False, error=str(e))

    # =========================================================================
    # EXAMS & COURSES
    # =========================================================================

    def add_exam(self, name: str, description: Optional[str] = None) -> ServiceResult:
        """Create an exam."""
        try:
            with self._database() as db:
                exam_id = db.add_exam(name, description)
            return ServiceResult(success=True, message=f"Added exam {name}", data={"id": exam_id})
        except QuestexError as e:
            return ServiceResult(success=False, error=str(e))

    def get_exams(self) -> ServiceResult:
        """List exams ordered by name."""
        try:
            with self._database() as db:
                exams = db.get_exams()
            return ServiceResult(success=True, data={"exams": exams, "count": len(exams)})
        except QuestexError as e:
            return ServiceResult(success=False, error=str(e))

    def add_course(
        self, exam_id: str, name: str, description: Optional[str] = None
    ) -> ServiceResult:
        """Create a course under an exam."""
        try:
            with self._database() as db:
                course_id = db.add_course(exam_id, name, description)
            return ServiceResult(
                success=True, message=f"Added course {name}", data={"id": course_id}
            )
        except QuestexError as e:
            return ServiceResult(success=False, error=str(e))

    def get_courses(self, exam_id: str) -> ServiceResult:
        """List the courses of an exam ordered by name."""
        try:
            with self._database() as db:
                courses = db.get_courses_by_exam(exam_id)
            return ServiceResult(success=True, data={"courses": courses, "count": len(courses)})
        except QuestexError as e:
            return ServiceResult(success=False, error=str(e))
