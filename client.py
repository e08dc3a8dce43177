"""
Async HTTP client for the record store.

Every call returns the typed response schemas or raises ``ApiError`` when the
store answers with a non-2xx status. Transport failures surface as
``httpx.HTTPError``.
"""

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, TypeAdapter

from config import settings
from errors import ApiError
from schemas import (
    StudentCreate, StudentUpdate, StudentResponse,
    CourseCreate, CourseUpdate, CourseResponse,
    FacultyResponse,
    GradeCreate, GradeUpdate, GradeResponse,
)

logger = logging.getLogger(__name__)

_students = TypeAdapter(List[StudentResponse])
_courses = TypeAdapter(List[CourseResponse])
_faculty = TypeAdapter(List[FacultyResponse])
_grades = TypeAdapter(List[GradeResponse])


class AcademicApi:
    """Typed facade over the store's REST routes."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "AcademicApi":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, payload: Optional[BaseModel] = None, params: Optional[dict] = None):
        body = payload.model_dump(mode="json", exclude_unset=True) if payload is not None else None
        response = await self._client.request(method, path, json=body, params=params)
        if response.is_error:
            logger.warning(f"{method} {path} failed with {response.status_code}")
            raise ApiError(response.status_code, response.text or "Request failed")
        if response.status_code == 204:
            return None
        return response.json()

    # Students
    async def get_students(self) -> List[StudentResponse]:
        return _students.validate_python(await self._request("GET", "/students/"))

    async def get_student(self, student_id: int) -> StudentResponse:
        return StudentResponse.model_validate(await self._request("GET", f"/students/{student_id}"))

    async def create_student(self, payload: StudentCreate) -> StudentResponse:
        return StudentResponse.model_validate(await self._request("POST", "/students/", payload))

    async def update_student(self, student_id: int, payload: StudentUpdate) -> StudentResponse:
        return StudentResponse.model_validate(await self._request("PATCH", f"/students/{student_id}", payload))

    async def delete_student(self, student_id: int) -> None:
        await self._request("DELETE", f"/students/{student_id}")

    # Courses
    async def get_courses(self) -> List[CourseResponse]:
        return _courses.validate_python(await self._request("GET", "/courses/"))

    async def get_course(self, course_id: int) -> CourseResponse:
        return CourseResponse.model_validate(await self._request("GET", f"/courses/{course_id}"))

    async def create_course(self, payload: CourseCreate) -> CourseResponse:
        return CourseResponse.model_validate(await self._request("POST", "/courses/", payload))

    async def update_course(self, course_id: int, payload: CourseUpdate) -> CourseResponse:
        return CourseResponse.model_validate(await self._request("PATCH", f"/courses/{course_id}", payload))

    async def delete_course(self, course_id: int) -> None:
        await self._request("DELETE", f"/courses/{course_id}")

    # Faculty
    async def get_faculty(self) -> List[FacultyResponse]:
        return _faculty.validate_python(await self._request("GET", "/faculty/"))

    # Grades
    async def get_grades(self, student_id: Optional[int] = None, course_id: Optional[int] = None) -> List[GradeResponse]:
        params = {}
        if student_id is not None:
            params["student_id"] = student_id
        if course_id is not None:
            params["course_id"] = course_id
        return _grades.validate_python(await self._request("GET", "/grades/", params=params or None))

    async def get_grades_by_student(self, student_id: int) -> List[GradeResponse]:
        return await self.get_grades(student_id=student_id)

    async def get_grades_by_course(self, course_id: int) -> List[GradeResponse]:
        return await self.get_grades(course_id=course_id)

    async def create_grade(self, payload: GradeCreate) -> GradeResponse:
        return GradeResponse.model_validate(await self._request("POST", "/grades/", payload))

    async def update_grade(self, grade_id: int, payload: GradeUpdate) -> GradeResponse:
        return GradeResponse.model_validate(await self._request("PATCH", f"/grades/{grade_id}", payload))

    async def delete_grade(self, grade_id: int) -> None:
        await self._request("DELETE", f"/grades/{grade_id}")

    async def reset(self) -> None:
        await self._request("POST", "/reset")
