"""
Database management for Questex.
Handles SQLite operations and schema management for exams, courses and questions.
"""

import json
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import Config
from core.errors import StorageError

logger = logging.getLogger(__name__)


class Database:
    """Manages SQLite database operations for Questex."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Uses Config.DB_PATH if not provided.
        """
        self.db_path = db_path or Config.DB_PATH
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self):
        """Establish database connection."""
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row  # Enable dict-like access
        # Enable foreign keys
        self.conn.execute("PRAGMA foreign_keys = ON")

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        if self.conn:
            if exc_type is None:
                self.conn.commit()
            else:
                self.conn.rollback()
            self.close()

    def initialize(self):
        """Create all tables and indexes."""
        if not self.conn:
            self.connect()

        self._create_tables()
        self._create_indexes()
        self.conn.commit()

    def _create_tables(self):
        """Create all database tables."""

        # Exams table
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS exams (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Courses table
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS courses (
                id TEXT PRIMARY KEY,
                exam_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (exam_id) REFERENCES exams(id) ON DELETE CASCADE
            )
        """)

        # Questions table; options is a JSON array or NULL
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS questions (
                id TEXT PRIMARY KEY,
                question_type TEXT NOT NULL,
                question_statement TEXT NOT NULL,
                options TEXT,
                course_id TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE SET NULL
            )
        """)

    def _create_indexes(self):
        """Create database indexes for performance."""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_courses_exam ON courses(exam_id)",
            "CREATE INDEX IF NOT EXISTS idx_questions_type ON questions(question_type)",
            "CREATE INDEX IF NOT EXISTS idx_questions_course ON questions(course_id)",
            "CREATE INDEX IF NOT EXISTS idx_questions_created ON questions(created_at)",
        ]

        for index_sql in indexes:
            self.conn.execute(index_sql)

    @staticmethod
    def _question_from_row(row: sqlite3.Row) -> Dict[str, Any]:
        result = dict(row)
        if result.get("options"):
            result["options"] = json.loads(result["options"])
        return result

    # Exam operations
    def add_exam(self, name: str, description: str = None) -> str:
        """Add a new exam.

        Returns:
            Exam ID
        """
        exam_id = str(uuid.uuid4())
        try:
            self.conn.execute(
                "INSERT INTO exams (id, name, description) VALUES (?, ?, ?)",
                (exam_id, name, description),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save exam: {e}") from e
        return exam_id

    def get_exams(self) -> List[Dict[str, Any]]:
        """Get all exams ordered by name."""
        try:
            cursor = self.conn.execute("SELECT * FROM exams ORDER BY name")
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to fetch exams: {e}") from e

    # Course operations
    def add_course(self, exam_id: str, name: str, description: str = None) -> str:
        """Add a new course under an exam.

        Returns:
            Course ID
        """
        course_id = str(uuid.uuid4())
        try:
            self.conn.execute(
                "INSERT INTO courses (id, exam_id, name, description) VALUES (?, ?, ?, ?)",
                (course_id, exam_id, name, description),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save course: {e}") from e
        return course_id

    def get_course(self, course_id: str) -> Optional[Dict[str, Any]]:
        """Get course by ID."""
        try:
            cursor = self.conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,))
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to fetch courses: {e}") from e
        return dict(row) if row else None

    def get_courses_by_exam(self, exam_id: str) -> List[Dict[str, Any]]:
        """Get all courses of an exam ordered by name."""
        try:
            cursor = self.conn.execute(
                "SELECT * FROM courses WHERE exam_id = ? ORDER BY name", (exam_id,)
            )
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to fetch courses: {e}") from e

    # Question operations
    def save_questions(self, questions: List[Dict[str, Any]]) -> List[str]:
        """Insert a batch of questions atomically.

        Args:
            questions: Dicts with question_type, question_statement, and
                optional options (list or None) and course_id

        Returns:
            IDs of the inserted questions, in input order
        """
        rows = []
        for question in questions:
            options = question.get("options")
            rows.append(
                (
                    str(uuid.uuid4()),
                    question["question_type"],
                    question["question_statement"],
                    json.dumps(options) if options is not None else None,
                    question.get("course_id"),
                )
            )

        try:
            self.conn.executemany(
                """
                INSERT INTO questions
                (id, question_type, question_statement, options, course_id)
                VALUES (?, ?, ?, ?, ?)
            """,
                rows,
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StorageError(f"Failed to save questions: {e}") from e

        logger.info(f"Saved {len(rows)} questions")
        return [row[0] for row in rows]

    def get_questions(self, question_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get stored questions, newest first.

        Args:
            question_type: Only return questions of this type
        """
        query = "SELECT * FROM questions"
        params = []
        if question_type:
            query += " WHERE question_type = ?"
            params.append(question_type)
        query += " ORDER BY created_at DESC, rowid DESC"

        try:
            cursor = self.conn.execute(query, params)
            return [self._question_from_row(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to fetch questions: {e}") from e

    def get_question(self, question_id: str) -> Optional[Dict[str, Any]]:
        """Get question by ID."""
        try:
            cursor = self.conn.execute("SELECT * FROM questions WHERE id = ?", (question_id,))
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to fetch questions: {e}") from e
        return self._question_from_row(row) if row else None

    def delete_question(self, question_id: str) -> bool:
        """Delete a question.

        Returns:
            True if a question was deleted
        """
        try:
            cursor = self.conn.execute("DELETE FROM questions WHERE id = ?", (question_id,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete question: {e}") from e
        return cursor.rowcount > 0
