"""
Enrollment aggregation and leaderboards.

Every function here is a pure fold over the collections it is given. Grades,
students and courses are read through attributes, so SQLModel rows and API
response models can be passed interchangeably.
"""

from collections import Counter, defaultdict
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, NamedTuple, Sequence, Tuple

from grading import calculate_gpa, format_student_name

MONTH_LABEL_FORMAT = "%b %Y"


class MonthCount(NamedTuple):
    label: str
    count: int


class CourseTopStudent(NamedTuple):
    course: str
    code: str
    student: str
    score: float


def group_by_student(grades: Iterable) -> Dict[int, list]:
    grouped = defaultdict(list)
    for grade in grades:
        grouped[grade.student_id].append(grade)
    return dict(grouped)


def enrollment_by_course(grades: Iterable) -> Counter:
    """Count grades per course id. Courses without grades are not present."""
    return Counter(grade.course_id for grade in grades)


def course_enrollment_counts(courses: Iterable, grades: Iterable) -> List[Tuple[object, int]]:
    """Pair every course in catalog order with its enrollment count, 0 included."""
    counts = enrollment_by_course(grades)
    return [(course, counts.get(course.id, 0)) for course in courses]


def parse_timestamp(value) -> datetime:
    """Accept a datetime, a date, or ISO 8601 text (``Z`` suffix allowed)."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def enrollment_by_month(grades: Iterable) -> List[MonthCount]:
    """
    Tally grades per calendar month of their creation timestamp.

    The result is ordered by the actual (year, month), so "Jan 2024" comes
    before "Mar 2024" and "Dec 2023" before both.
    """
    tally = Counter()
    for grade in grades:
        created = parse_timestamp(grade.created_at)
        tally[(created.year, created.month)] += 1

    series = []
    for (year, month), count in sorted(tally.items()):
        label = date(year, month, 1).strftime(MONTH_LABEL_FORMAT)
        series.append(MonthCount(label, count))
    return series


def top_n(items: Iterable, n: int, key: Callable) -> list:
    """
    Sort descending by ``key`` and keep the first ``n``.

    The sort is stable, so items with equal keys stay in the order they had
    in ``items``.
    """
    if n <= 0:
        return []
    return sorted(items, key=key, reverse=True)[:n]


def student_gpas(students: Iterable, grades: Iterable) -> List[Tuple[object, float]]:
    by_student = group_by_student(grades)
    return [(student, calculate_gpa(by_student.get(student.id, []))) for student in students]


def student_leaderboard(students: Iterable, grades: Iterable, n: int) -> List[Tuple[object, float]]:
    return top_n(student_gpas(students, grades), n, key=lambda entry: entry[1])


def popular_courses(courses: Iterable, grades: Iterable, n: int) -> List[Tuple[object, int]]:
    return top_n(course_enrollment_counts(courses, grades), n, key=lambda entry: entry[1])


def top_student_by_course(courses: Iterable, students: Iterable, grades: Sequence) -> List[CourseTopStudent]:
    """Highest score per course. Courses without grades are skipped."""
    students_by_id = {student.id: student for student in students}
    best = {}
    for grade in grades:
        current = best.get(grade.course_id)
        if current is None or grade.score > current.score:
            best[grade.course_id] = grade

    rows = []
    for course in courses:
        grade = best.get(course.id)
        if grade is None:
            continue
        student = students_by_id.get(grade.student_id)
        name = format_student_name(student) if student else "Student"
        rows.append(CourseTopStudent(course.title, course.code, name, grade.score))
    return rows


def recent_grades(grades: Iterable, n: int) -> list:
    """Most recently updated grades first."""
    return top_n(grades, n, key=lambda grade: _sortable(parse_timestamp(grade.updated_at)))


def monthly_enrollment_rows(series: Iterable[MonthCount]) -> List[dict]:
    return [{"Month": entry.label, "Enrollments": entry.count} for entry in series]


def top_student_rows(entries: Iterable[CourseTopStudent]) -> List[dict]:
    return [
        {
            "Course": entry.course,
            "Code": entry.code,
            "Top Student": entry.student,
            "Top Score": entry.score,
        }
        for entry in entries
    ]


def _sortable(moment: datetime) -> float:
    # naive timestamps are treated as UTC so they compare with aware ones
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()
