"""
Demo dataset for the in-memory store.

``reset_store`` wipes every table and loads the dataset again, which is how
the store is returned to a known state between demo sessions.
"""

import logging
from datetime import datetime, timezone

from sqlmodel import Session, select

from grading import score_to_letter
from models import Student, Course, Faculty, Grade

logger = logging.getLogger(__name__)


FACULTY = [
    {"id": 1, "name": "Dr. Ada Morgan", "email": "ada.morgan@college.edu", "department": "Computer Science", "title": "Professor"},
    {"id": 2, "name": "Dr. Ravi Patel", "email": "ravi.patel@college.edu", "department": "Mathematics", "title": "Associate Professor"},
    {"id": 3, "name": "Dr. Elena Ruiz", "email": "elena.ruiz@college.edu", "department": "Physics", "title": "Assistant Professor"},
    {"id": 4, "name": "Prof. Samuel Okoye", "email": "samuel.okoye@college.edu", "department": "History", "title": "Lecturer"},
    {"id": 5, "name": "Dr. Mei Lin", "email": "mei.lin@college.edu", "department": "Computer Science", "title": "Associate Professor"},
]

COURSES = [
    {"id": 1, "code": "CS101", "title": "Introduction to Programming", "department": "Computer Science", "credits": 4,
     "description": "Fundamentals of programming in Python.", "faculty_ids": [1, 5],
     "course_metadata": [{"key": "Room", "value": "ENG-204"}], "created_at": "2023-08-20T09:00:00+00:00"},
    {"id": 2, "code": "CS220", "title": "Data Structures", "department": "Computer Science", "credits": 4,
     "description": "Lists, trees, graphs and their algorithms.", "faculty_ids": [5],
     "course_metadata": [], "created_at": "2023-08-20T09:00:00+00:00"},
    {"id": 3, "code": "MATH150", "title": "Calculus I", "department": "Mathematics", "credits": 3,
     "description": None, "faculty_ids": [2],
     "course_metadata": [{"key": "Prerequisite", "value": "Precalculus"}], "created_at": "2023-08-21T09:00:00+00:00"},
    {"id": 4, "code": "PHYS110", "title": "General Physics", "department": "Physics", "credits": 4,
     "description": "Mechanics and thermodynamics.", "faculty_ids": [3],
     "course_metadata": [], "created_at": "2023-08-21T09:00:00+00:00"},
    {"id": 5, "code": "HIST205", "title": "Modern World History", "department": "History", "credits": 3,
     "description": None, "faculty_ids": [4],
     "course_metadata": [], "created_at": "2023-08-22T09:00:00+00:00"},
    {"id": 6, "code": "MATH310", "title": "Linear Algebra", "department": "Mathematics", "credits": 3,
     "description": "Vector spaces and linear maps.", "faculty_ids": [2],
     "course_metadata": [], "created_at": "2023-08-22T09:00:00+00:00"},
]

STUDENTS = [
    {"id": 1, "first_name": "Maya", "last_name": "Chen", "email": "maya.chen@student.edu", "year": "Junior", "major": "Computer Science",
     "notes": "Dean's list", "attributes": [{"key": "Advisor", "value": "Dr. Morgan"}], "created_at": "2023-09-01T10:00:00+00:00"},
    {"id": 2, "first_name": "Liam", "last_name": "Johnson", "email": "liam.johnson@student.edu", "year": "Freshman", "major": "Mathematics",
     "notes": None, "attributes": [], "created_at": "2023-09-01T10:05:00+00:00"},
    {"id": 3, "first_name": "Sofia", "last_name": "Garcia", "email": "sofia.garcia@student.edu", "year": "Senior", "major": "Physics",
     "notes": None, "attributes": [{"key": "Scholarship", "value": "Merit"}], "created_at": "2023-09-02T11:00:00+00:00"},
    {"id": 4, "first_name": "Noah", "last_name": "Williams", "email": "noah.williams@student.edu", "year": "Sophomore", "major": "History",
     "notes": None, "attributes": [], "created_at": "2023-09-02T11:30:00+00:00"},
    {"id": 5, "first_name": "Aisha", "last_name": "Khan", "email": "aisha.khan@student.edu", "year": "Graduate", "major": "Computer Science",
     "notes": "Teaching assistant for CS101", "attributes": [], "created_at": "2023-09-03T08:45:00+00:00"},
    {"id": 6, "first_name": "Ethan", "last_name": "Brown", "email": "ethan.brown@student.edu", "year": "Junior", "major": "Mathematics",
     "notes": None, "attributes": [], "created_at": "2023-09-03T09:15:00+00:00"},
    {"id": 7, "first_name": "Olivia", "last_name": "Davis", "email": "olivia.davis@student.edu", "year": "Freshman", "major": "Physics",
     "notes": None, "attributes": [], "created_at": "2023-09-04T13:00:00+00:00"},
    {"id": 8, "first_name": "Lucas", "last_name": "Martin", "email": "lucas.martin@student.edu", "year": "Senior", "major": "Computer Science",
     "notes": None, "attributes": [{"key": "Internship", "value": "Summer 2023"}], "created_at": "2023-09-04T14:20:00+00:00"},
]

# (student_id, course_id, score, created_at)
GRADES = [
    (1, 1, 96, "2024-01-08T09:00:00+00:00"),
    (1, 2, 91, "2024-01-09T09:00:00+00:00"),
    (1, 3, 88, "2024-01-10T09:00:00+00:00"),
    (2, 3, 74, "2024-01-12T09:00:00+00:00"),
    (2, 6, 81, "2024-02-02T09:00:00+00:00"),
    (3, 4, 93, "2024-01-15T09:00:00+00:00"),
    (3, 3, 85, "2024-02-05T09:00:00+00:00"),
    (4, 5, 78, "2024-02-06T09:00:00+00:00"),
    (4, 1, 62, "2024-02-07T09:00:00+00:00"),
    (5, 2, 98, "2024-02-10T09:00:00+00:00"),
    (5, 6, 90, "2024-03-01T09:00:00+00:00"),
    (6, 6, 84, "2024-03-03T09:00:00+00:00"),
    (6, 3, 69, "2024-03-04T09:00:00+00:00"),
    (7, 4, 57, "2024-03-11T09:00:00+00:00"),
    (7, 1, 80, "2024-03-12T09:00:00+00:00"),
    (8, 1, 89, "2024-04-01T09:00:00+00:00"),
    (8, 2, 94, "2024-04-02T09:00:00+00:00"),
]


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value).astimezone(timezone.utc)


def load_seed_data(session: Session):
    """Insert the demo dataset. Assumes the tables are empty."""
    for row in FACULTY:
        session.add(Faculty(**row))
    for row in COURSES:
        session.add(Course(**{**row, "created_at": _parse(row["created_at"])}))
    for row in STUDENTS:
        session.add(Student(**{**row, "created_at": _parse(row["created_at"])}))
    for student_id, course_id, score, created_at in GRADES:
        timestamp = _parse(created_at)
        session.add(Grade(
            student_id=student_id,
            course_id=course_id,
            score=score,
            letter=score_to_letter(score),
            created_at=timestamp,
            updated_at=timestamp,
        ))
    session.commit()
    logger.info(
        f"Seeded {len(STUDENTS)} students, {len(COURSES)} courses, "
        f"{len(FACULTY)} faculty and {len(GRADES)} grades"
    )


def seed_if_empty(session: Session) -> bool:
    """Load the demo dataset unless the store already holds students or faculty."""
    has_data = (
        session.exec(select(Student)).first() is not None
        or session.exec(select(Faculty)).first() is not None
    )
    if has_data:
        logger.info("Store already populated; skipping seed")
        return False
    load_seed_data(session)
    return True


def reset_store(session: Session):
    """Delete every row and reload the demo dataset"""
    for model in (Grade, Course, Student, Faculty):
        for row in session.exec(select(model)).all():
            session.delete(row)
    session.commit()
    logger.info("Store cleared")
    load_seed_data(session)
