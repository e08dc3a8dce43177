"""
Shared test fixtures: an in-memory store, a sync TestClient and an async
AcademicApi wired to the app through ASGITransport.
"""
import asyncio
from typing import AsyncGenerator

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from client import AcademicApi
from database import get_session
from errors import ApiError
from grading import score_to_letter
from main import app
from schemas import CourseResponse, FacultyResponse, GradeResponse, StudentResponse
from seed import load_seed_data


# Create in-memory SQLite database for testing
@pytest.fixture(name="session")
def session_fixture():
    """Create a fresh database session for each test"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="seeded_session")
def seeded_session_fixture(session: Session):
    """The test session preloaded with the demo dataset"""
    load_seed_data(session)
    return session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with dependency override"""
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="api")
async def api_fixture(seeded_session: Session) -> AsyncGenerator[AcademicApi, None]:
    """Async API client talking to the app in-process, over the seeded store"""
    def get_session_override():
        return seeded_session

    app.dependency_overrides[get_session] = get_session_override
    transport = httpx.ASGITransport(app=app)
    async with AcademicApi(base_url="http://test", transport=transport) as api:
        yield api
    app.dependency_overrides.clear()


class FakeApi:
    """
    In-memory stand-in for AcademicApi.

    ``failures`` maps a method name to the exception it should raise,
    ``failing_grade_ids`` makes individual grade deletes fail and ``delay``
    slows every call down.
    """

    def __init__(self):
        self.students = [
            _student(1, "Maya", "Chen", "Junior", "Computer Science"),
            _student(2, "Liam", "Johnson", "Freshman", "Mathematics"),
            _student(3, "Sofia", "Garcia", "Senior", "Physics"),
        ]
        self.courses = [
            _course(10, "CS101", "Introduction to Programming", [1, 2]),
            _course(20, "MATH150", "Calculus I", [2]),
            _course(30, "HIST205", "Modern World History", []),
        ]
        self.faculty = [
            FacultyResponse(id=1, name="Dr. Ada Morgan", email="ada@example.com", department="Computer Science", title="Professor"),
            FacultyResponse(id=2, name="Dr. Ravi Patel", email="ravi@example.com", department="Mathematics", title="Lecturer"),
        ]
        self.grades = [
            _grade(1, 1, 10, 96, "2024-01-08T09:00:00+00:00"),
            _grade(2, 1, 20, 88, "2024-01-10T09:00:00+00:00", "2024-03-01T09:00:00+00:00"),
            _grade(3, 2, 20, 74, "2024-02-02T09:00:00+00:00"),
            _grade(4, 3, 10, 60, "2024-03-05T09:00:00+00:00"),
        ]
        self.failures = {}
        self.failing_grade_ids = set()
        self.delay = 0
        self.calls = []

    async def _call(self, name, *args):
        self.calls.append((name,) + args)
        if self.delay:
            await asyncio.sleep(self.delay)
        if name in self.failures:
            raise self.failures[name]

    def _next_id(self, items):
        return max((item.id for item in items), default=0) + 1

    async def get_students(self):
        await self._call("get_students")
        return list(self.students)

    async def get_courses(self):
        await self._call("get_courses")
        return list(self.courses)

    async def get_faculty(self):
        await self._call("get_faculty")
        return list(self.faculty)

    async def get_grades(self, student_id=None, course_id=None):
        await self._call("get_grades")
        return [
            g for g in self.grades
            if (student_id is None or g.student_id == student_id)
            and (course_id is None or g.course_id == course_id)
        ]

    async def get_grades_by_student(self, student_id):
        await self._call("get_grades_by_student", student_id)
        return [g for g in self.grades if g.student_id == student_id]

    async def create_student(self, payload):
        await self._call("create_student")
        data = payload.model_dump(exclude={"created_at"})
        student = StudentResponse(**data, id=self._next_id(self.students), created_at=payload.created_at)
        self.students.append(student)
        return student

    async def update_student(self, student_id, payload):
        await self._call("update_student", student_id)
        index = next(i for i, s in enumerate(self.students) if s.id == student_id)
        updated = self.students[index].model_copy(update=payload.model_dump(exclude_unset=True))
        self.students[index] = updated
        return updated

    async def delete_student(self, student_id):
        await self._call("delete_student", student_id)
        self.students = [s for s in self.students if s.id != student_id]

    async def create_course(self, payload):
        await self._call("create_course")
        data = payload.model_dump(exclude={"created_at"})
        course = CourseResponse(**data, id=self._next_id(self.courses), created_at=payload.created_at)
        self.courses.append(course)
        return course

    async def update_course(self, course_id, payload):
        await self._call("update_course", course_id)
        index = next(i for i, c in enumerate(self.courses) if c.id == course_id)
        updated = self.courses[index].model_copy(update=payload.model_dump(exclude_unset=True))
        self.courses[index] = updated
        return updated

    async def delete_course(self, course_id):
        await self._call("delete_course", course_id)
        self.courses = [c for c in self.courses if c.id != course_id]

    async def create_grade(self, payload):
        await self._call("create_grade", payload.student_id, payload.course_id)
        if any(g.student_id == payload.student_id and g.course_id == payload.course_id for g in self.grades):
            raise ApiError(400, "Student already enrolled in this course")
        grade = GradeResponse(
            id=self._next_id(self.grades),
            student_id=payload.student_id,
            course_id=payload.course_id,
            score=payload.score,
            letter=score_to_letter(payload.score),
            created_at=payload.created_at,
            updated_at=payload.updated_at or payload.created_at,
        )
        self.grades.append(grade)
        return grade

    async def update_grade(self, grade_id, payload):
        await self._call("update_grade", grade_id)
        index = next(i for i, g in enumerate(self.grades) if g.id == grade_id)
        updated = self.grades[index].model_copy(update={
            "score": payload.score,
            "letter": score_to_letter(payload.score),
            "updated_at": payload.updated_at,
        })
        self.grades[index] = updated
        return updated

    async def delete_grade(self, grade_id):
        await self._call("delete_grade", grade_id)
        if grade_id in self.failing_grade_ids:
            raise ApiError(500, "Grade delete failed")
        self.grades = [g for g in self.grades if g.id != grade_id]


def _student(student_id, first_name, last_name, year, major):
    return StudentResponse(
        id=student_id,
        first_name=first_name,
        last_name=last_name,
        email=f"{first_name.lower()}.{last_name.lower()}@example.com",
        year=year,
        major=major,
        created_at="2023-09-01T10:00:00+00:00",
    )


def _course(course_id, code, title, faculty_ids):
    return CourseResponse(
        id=course_id,
        code=code,
        title=title,
        department="General",
        credits=3,
        faculty_ids=faculty_ids,
        created_at="2023-08-20T09:00:00+00:00",
    )


def _grade(grade_id, student_id, course_id, score, created_at, updated_at=None):
    return GradeResponse(
        id=grade_id,
        student_id=student_id,
        course_id=course_id,
        score=score,
        letter=score_to_letter(score),
        created_at=created_at,
        updated_at=updated_at or created_at,
    )


@pytest.fixture(name="fake_api")
def fake_api_fixture():
    return FakeApi()
