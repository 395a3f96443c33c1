"""
Tests for the SQLite storage layer.

Each test works on a fresh database in a temporary directory.
"""

import sys
import os
import sqlite3
import tempfile
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.errors import StorageError
from storage.database import Database


def _with_db(test_body):
    """Run test_body against an initialized database in a temp dir."""
    with tempfile.TemporaryDirectory() as tmp:
        with Database(Path(tmp) / "test.db") as db:
            db.initialize()
            test_body(db)


# ============================================================================
# Exams and courses
# ============================================================================


def test_exams_ordered_by_name():
    """Exams are listed alphabetically."""

    def body(db):
        db.add_exam("JEE Main")
        db.add_exam("GATE", description="Graduate Aptitude Test")
        exams = db.get_exams()

        assert [e["name"] for e in exams] == ["GATE", "JEE Main"]
        assert exams[0]["description"] == "Graduate Aptitude Test"
        assert len(exams[0]["id"]) == 36  # UUID4
        assert exams[0]["created_at"] is not None

    _with_db(body)
    print("✓ test_exams_ordered_by_name passed")


def test_courses_by_exam():
    """Courses are scoped to their exam and ordered by name."""

    def body(db):
        gate = db.add_exam("GATE")
        jee = db.add_exam("JEE")
        db.add_course(gate, "Linear Algebra")
        db.add_course(gate, "Calculus")
        db.add_course(jee, "Physics")

        courses = db.get_courses_by_exam(gate)
        assert [c["name"] for c in courses] == ["Calculus", "Linear Algebra"]
        assert all(c["exam_id"] == gate for c in courses)
        assert db.get_courses_by_exam("missing") == []

    _with_db(body)
    print("✓ test_courses_by_exam passed")


def test_add_course_unknown_exam():
    """A course must belong to an existing exam."""

    def body(db):
        try:
            db.add_course("no-such-exam", "Orphan")
            assert False, "Should have raised StorageError"
        except StorageError as e:
            assert str(e).startswith("Failed to save course:")
            assert isinstance(e.__cause__, sqlite3.IntegrityError)

    _with_db(body)
    print("✓ test_add_course_unknown_exam passed")


# ============================================================================
# Questions
# ============================================================================


def test_save_and_get_questions():
    """Saved questions round-trip with their options."""

    def body(db):
        exam = db.add_exam("GATE")
        course = db.add_course(exam, "Linear Algebra")
        ids = db.save_questions(
            [
                {
                    "question_type": "MCQ",
                    "question_statement": "What is \\frac{3}{4}?",
                    "options": ["1", "2"],
                    "course_id": course,
                },
                {
                    "question_type": "NAT",
                    "question_statement": "Find \\det(A).",
                    "options": None,
                    "course_id": course,
                },
            ]
        )

        assert len(ids) == 2
        stored = db.get_question(ids[0])
        assert stored["question_statement"] == "What is \\frac{3}{4}?"
        assert stored["options"] == ["1", "2"]
        assert stored["course_id"] == course
        assert db.get_question(ids[1])["options"] is None
        assert db.get_question("missing") is None

    _with_db(body)
    print("✓ test_save_and_get_questions passed")


def test_get_questions_newest_first_and_filtered():
    """Questions come back newest first and can be filtered by type."""

    def body(db):
        first = db.save_questions([{"question_type": "MCQ", "question_statement": "First one?"}])
        second = db.save_questions([{"question_type": "NAT", "question_statement": "Second one?"}])
        third = db.save_questions([{"question_type": "MCQ", "question_statement": "Third one?"}])

        all_questions = db.get_questions()
        assert [q["id"] for q in all_questions] == [third[0], second[0], first[0]]

        mcq = db.get_questions("MCQ")
        assert [q["id"] for q in mcq] == [third[0], first[0]]
        assert db.get_questions("Subjective") == []

    _with_db(body)
    print("✓ test_get_questions_newest_first_and_filtered passed")


def test_save_questions_is_atomic():
    """A failing row rolls back the whole batch."""

    def body(db):
        try:
            db.save_questions(
                [
                    {"question_type": "MCQ", "question_statement": "Valid question?"},
                    {"question_type": "MCQ", "question_statement": "Bad course", "course_id": "nope"},
                ]
            )
            assert False, "Should have raised StorageError"
        except StorageError as e:
            assert str(e).startswith("Failed to save questions:")

        assert db.get_questions() == []

    _with_db(body)
    print("✓ test_save_questions_is_atomic passed")


def test_delete_question():
    """Deleting removes the row and reports whether it existed."""

    def body(db):
        ids = db.save_questions([{"question_type": "MCQ", "question_statement": "Delete me?"}])

        assert db.delete_question(ids[0]) is True
        assert db.get_question(ids[0]) is None
        assert db.delete_question(ids[0]) is False

    _with_db(body)
    print("✓ test_delete_question passed")


def test_fetch_without_schema_raises_storage_error():
    """Database errors surface as labeled StorageErrors."""
    with tempfile.TemporaryDirectory() as tmp:
        with Database(Path(tmp) / "empty.db") as db:
            try:
                db.get_questions()
                assert False, "Should have raised StorageError"
            except StorageError as e:
                assert str(e).startswith("Failed to fetch questions:")

            try:
                db.get_exams()
                assert False, "Should have raised StorageError"
            except StorageError as e:
                assert str(e).startswith("Failed to fetch exams:")

            try:
                db.delete_question("x")
                assert False, "Should have raised StorageError"
            except StorageError as e:
                assert str(e).startswith("Failed to delete question:")
    print("✓ test_fetch_without_schema_raises_storage_error passed")
