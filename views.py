"""
Join, filter and paginate helpers behind the list screens.

All functions take snapshots and return new values; nothing is mutated.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence

from grading import format_student_name

logger = logging.getLogger(__name__)


class JoinedRow(NamedTuple):
    grade: object
    student: object
    course: object


@dataclass(frozen=True)
class Page:
    items: list
    current_page: int
    total_pages: int
    total_items: int
    page_size: int

    @property
    def first_index(self) -> int:
        """1-based position of the first item on the page, 0 when empty."""
        if not self.items:
            return 0
        return (self.current_page - 1) * self.page_size + 1

    @property
    def last_index(self) -> int:
        if not self.items:
            return 0
        return (self.current_page - 1) * self.page_size + len(self.items)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


def join_grades(grades: Iterable, students: Iterable, courses: Iterable) -> List[JoinedRow]:
    """
    Inner join grades with their student and course.

    Grades whose student or course is missing are dropped. This happens
    legitimately between a delete and its cascade, so it is not an error.
    """
    students_by_id = {student.id: student for student in students}
    courses_by_id = {course.id: course for course in courses}

    rows = []
    dropped = 0
    for grade in grades:
        student = students_by_id.get(grade.student_id)
        course = courses_by_id.get(grade.course_id)
        if student is None or course is None:
            dropped += 1
            continue
        rows.append(JoinedRow(grade, student, course))

    if dropped:
        logger.debug(f"Dropped {dropped} grade(s) referencing a missing student or course")
    return rows


def filter_rows(rows: Iterable, predicate: Callable) -> list:
    return [row for row in rows if predicate(row)]


def paginate(items: Sequence, page_size: int, page_number: int) -> Page:
    """Slice ``items`` into one page, clamping ``page_number`` into range."""
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")
    total_items = len(items)
    total_pages = max(1, math.ceil(total_items / page_size))
    current_page = min(max(page_number, 1), total_pages)
    start = (current_page - 1) * page_size
    return Page(list(items[start:start + page_size]), current_page, total_pages, total_items, page_size)


# ============= PREDICATES =============

def text_matches(query: str, *values) -> bool:
    """Case-insensitive substring match against any of ``values``."""
    needle = (query or "").lower()
    if not needle:
        return True
    return any(needle in str(value).lower() for value in values if value is not None)


def student_predicate(
    search: str = "",
    year: Optional[str] = None,
    course_id: Optional[int] = None,
    grades_by_student: Optional[Dict[int, list]] = None,
) -> Callable:
    grades_by_student = grades_by_student or {}

    def predicate(student) -> bool:
        if not text_matches(search, format_student_name(student), student.email):
            return False
        if year and _value_of(student.year) != _value_of(year):
            return False
        if course_id is not None:
            enrolled = grades_by_student.get(student.id, [])
            if not any(grade.course_id == course_id for grade in enrolled):
                return False
        return True

    return predicate


def course_predicate(search: str = "") -> Callable:
    def predicate(course) -> bool:
        return text_matches(search, course.title, course.code, course.department)

    return predicate


def roster_predicate(search: str = "") -> Callable:
    def predicate(row: JoinedRow) -> bool:
        return text_matches(
            search,
            format_student_name(row.student),
            row.course.code,
            row.course.title,
        )

    return predicate


def _value_of(value):
    return getattr(value, "value", value)


# ============= LIST STATE =============

@dataclass(frozen=True)
class ListView:
    """Filter and page selection for one list screen."""

    search: str = ""
    year: Optional[str] = None
    course_id: Optional[int] = None
    page: int = 1

    def with_filters(self, **changes) -> "ListView":
        """Apply filter changes; any actual change sends the view back to page 1."""
        unknown = set(changes) - {"search", "year", "course_id"}
        if unknown:
            raise TypeError(f"Unknown filter(s): {', '.join(sorted(unknown))}")
        updated = replace(self, **changes)
        if updated == self:
            return self
        return replace(updated, page=1)

    def with_page(self, page: int) -> "ListView":
        return replace(self, page=max(1, page))
