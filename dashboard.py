"""
Dashboard state and controller.

``AppState`` is the single source of truth for the dashboard. It only
changes through ``reduce`` (pure transitions) or through the controller's
flows, which call the store and then dispatch actions. Everything shown on
screen is derived from the state by pure functions that are memoized on the
identity of their inputs, so a derived view is recomputed only when one of
the collections or list views it reads has been replaced.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable, List, NamedTuple, Optional, Tuple

import httpx

from commands import BulkOutcome, DeleteCourse, DeleteStudent, OptimisticCommand, run_bulk
from config import settings
from csv_export import export_csv
from errors import ApiError
from grading import average_score, calculate_gpa, validate_score
from reporting import (
    MonthCount, CourseTopStudent,
    course_enrollment_counts, enrollment_by_month, enrollment_by_course, group_by_student,
    monthly_enrollment_rows, popular_courses, recent_grades, student_leaderboard,
    top_student_by_course, top_student_rows,
)
from schemas import CourseCreate, CourseUpdate, GradeCreate, GradeUpdate, StudentCreate, StudentUpdate
from views import (
    JoinedRow, ListView, Page,
    course_predicate, filter_rows, join_grades, paginate, roster_predicate, student_predicate,
)

logger = logging.getLogger(__name__)

REMOTE_ERRORS = (ApiError, httpx.HTTPError)

ENROLLMENT_REPORT_FILENAME = "course-enrollments-report.csv"
TOP_STUDENTS_FILENAME = "top-students-by-course.csv"


# ============= STATE =============

@dataclass(frozen=True)
class AppState:
    students: tuple = ()
    courses: tuple = ()
    faculty: tuple = ()
    grades: tuple = ()
    status: str = "idle"
    error: Optional[str] = None
    message: Optional[str] = None
    student_view: ListView = field(default_factory=ListView)
    course_view: ListView = field(default_factory=ListView)
    roster_view: ListView = field(default_factory=ListView)


@dataclass(frozen=True)
class LoadStarted:
    pass


@dataclass(frozen=True)
class Loaded:
    students: tuple
    courses: tuple
    faculty: tuple
    grades: tuple


@dataclass(frozen=True)
class LoadFailed:
    error: str


@dataclass(frozen=True)
class SetFilters:
    view: str
    changes: dict


@dataclass(frozen=True)
class SetPage:
    view: str
    page: int


@dataclass(frozen=True)
class StudentSaved:
    student: object


@dataclass(frozen=True)
class CourseSaved:
    course: object


@dataclass(frozen=True)
class GradesAdded:
    grades: tuple


@dataclass(frozen=True)
class GradeReplaced:
    grade: object


@dataclass(frozen=True)
class GradesRemoved:
    grade_ids: frozenset


@dataclass(frozen=True)
class Notify:
    message: Optional[str] = None
    error: Optional[str] = None


VIEW_NAMES = ("student_view", "course_view", "roster_view")


def reduce(state: AppState, action) -> AppState:
    """Return the state that follows ``state`` after ``action``."""
    if isinstance(action, LoadStarted):
        return replace(state, status="loading", error=None)
    if isinstance(action, Loaded):
        return replace(
            state,
            students=tuple(action.students),
            courses=tuple(action.courses),
            faculty=tuple(action.faculty),
            grades=tuple(action.grades),
            status="ready",
            error=None,
        )
    if isinstance(action, LoadFailed):
        # keep the last good snapshot on screen
        return replace(state, status="error", error=action.error)
    if isinstance(action, SetFilters):
        view = _view(state, action.view).with_filters(**action.changes)
        return replace(state, **{action.view: view})
    if isinstance(action, SetPage):
        view = _view(state, action.view).with_page(action.page)
        return replace(state, **{action.view: view})
    if isinstance(action, StudentSaved):
        return replace(state, students=_upsert(state.students, action.student))
    if isinstance(action, CourseSaved):
        return replace(state, courses=_upsert(state.courses, action.course))
    if isinstance(action, GradesAdded):
        return replace(state, grades=state.grades + tuple(action.grades))
    if isinstance(action, GradeReplaced):
        return replace(state, grades=_upsert(state.grades, action.grade))
    if isinstance(action, GradesRemoved):
        return replace(state, grades=tuple(g for g in state.grades if g.id not in action.grade_ids))
    if isinstance(action, Notify):
        return replace(state, message=action.message, error=action.error)
    raise TypeError(f"Unknown action: {action!r}")


def _view(state: AppState, name: str) -> ListView:
    if name not in VIEW_NAMES:
        raise ValueError(f"Unknown list view: {name}")
    return getattr(state, name)


def _upsert(items: tuple, item) -> tuple:
    if any(existing.id == item.id for existing in items):
        return tuple(item if existing.id == item.id else existing for existing in items)
    return items + (item,)


# ============= DERIVED VIEWS =============

def memoize_by_identity(func):
    """Cache the last result, keyed on the identity of every argument."""
    last = {}

    @functools.wraps(func)
    def wrapper(*args):
        key = tuple(id(arg) for arg in args)
        if last.get("key") != key:
            # args are held so their ids cannot be reused while cached
            last.update(key=key, args=args, value=func(*args))
        return last["value"]

    return wrapper


class StudentRow(NamedTuple):
    student: object
    courses_enrolled: int


class CourseRow(NamedTuple):
    course: object
    faculty_names: str
    enrolled: int


class DashboardSummary(NamedTuple):
    total_students: int
    total_courses: int
    total_faculty: int
    average_score: int
    enrollment_by_course: List[Tuple[object, int]]
    top_students: List[Tuple[object, float]]
    popular_courses: List[Tuple[object, int]]
    recent_grades: list


class ReportsView(NamedTuple):
    total_enrollments: int
    active_courses: int
    monthly_enrollments: List[MonthCount]
    top_by_course: List[CourseTopStudent]
    leaderboard: List[Tuple[object, float]]


class StudentProfile(NamedTuple):
    student: object
    enrolled: List[Tuple[object, object]]
    average_score: int
    gpa: float
    courses_enrolled: int


grades_by_student = memoize_by_identity(group_by_student)


@memoize_by_identity
def filtered_students(students: tuple, grades: tuple, view: ListView) -> list:
    predicate = student_predicate(view.search, view.year, view.course_id, grades_by_student(grades))
    return filter_rows(students, predicate)


@memoize_by_identity
def filtered_courses(courses: tuple, view: ListView) -> list:
    return filter_rows(courses, course_predicate(view.search))


@memoize_by_identity
def joined_roster(grades: tuple, students: tuple, courses: tuple) -> List[JoinedRow]:
    return join_grades(grades, students, courses)


@memoize_by_identity
def filtered_roster(grades: tuple, students: tuple, courses: tuple, view: ListView) -> List[JoinedRow]:
    return filter_rows(joined_roster(grades, students, courses), roster_predicate(view.search))


@memoize_by_identity
def summarize_dashboard(students: tuple, courses: tuple, faculty: tuple, grades: tuple) -> DashboardSummary:
    return DashboardSummary(
        total_students=len(students),
        total_courses=len(courses),
        total_faculty=len(faculty),
        average_score=average_score(grades),
        enrollment_by_course=course_enrollment_counts(courses, grades),
        top_students=student_leaderboard(students, grades, settings.DASHBOARD_LEADERBOARD_SIZE),
        popular_courses=popular_courses(courses, grades, settings.DASHBOARD_LEADERBOARD_SIZE),
        recent_grades=recent_grades(grades, settings.RECENT_ACTIVITY_SIZE),
    )


@memoize_by_identity
def summarize_reports(students: tuple, courses: tuple, grades: tuple) -> ReportsView:
    return ReportsView(
        total_enrollments=len(grades),
        active_courses=len(courses),
        monthly_enrollments=enrollment_by_month(grades),
        top_by_course=top_student_by_course(courses, students, grades),
        leaderboard=student_leaderboard(students, grades, settings.REPORT_LEADERBOARD_SIZE),
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ============= CONTROLLER =============

class DashboardController:
    """Owns the dashboard state and runs every flow that talks to the store."""

    def __init__(self, api, fetch_timeout: Optional[float] = None):
        self.api = api
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else settings.FETCH_TIMEOUT
        self.state = AppState()

    def dispatch(self, action) -> AppState:
        self.state = reduce(self.state, action)
        return self.state

    # Loading

    async def _fetch_all(self) -> Loaded:
        async with asyncio.TaskGroup() as group:
            students = group.create_task(self.api.get_students())
            courses = group.create_task(self.api.get_courses())
            faculty = group.create_task(self.api.get_faculty())
            grades = group.create_task(self.api.get_grades())
        return Loaded(
            students=tuple(students.result()),
            courses=tuple(courses.result()),
            faculty=tuple(faculty.result()),
            grades=tuple(grades.result()),
        )

    async def load(self) -> bool:
        """
        Fetch students, courses, faculty and grades concurrently.

        The snapshot is swapped in only once all four have arrived. If any
        fetch fails or the timeout expires, the outstanding fetches are
        cancelled and the previous snapshot stays in place.
        """
        self.dispatch(LoadStarted())
        try:
            async with asyncio.timeout(self.fetch_timeout):
                loaded = await self._fetch_all()
        except TimeoutError:
            logger.error(f"Loading records timed out after {self.fetch_timeout}s")
            self.dispatch(LoadFailed(f"Loading records timed out after {self.fetch_timeout}s"))
            return False
        except ExceptionGroup as group_error:
            remote, other = group_error.split(REMOTE_ERRORS)
            if other is not None:
                raise other
            reasons = "; ".join(str(exc) for exc in remote.exceptions)
            logger.error(f"Loading records failed: {reasons}")
            self.dispatch(LoadFailed(f"Failed to load records: {reasons}"))
            return False

        self.dispatch(loaded)
        logger.info(
            f"Loaded {len(loaded.students)} students, {len(loaded.courses)} courses, "
            f"{len(loaded.faculty)} faculty, {len(loaded.grades)} grades"
        )
        return True

    # List screens

    def set_filters(self, view: str, **changes) -> AppState:
        return self.dispatch(SetFilters(view, changes))

    def set_page(self, view: str, page: int) -> AppState:
        return self.dispatch(SetPage(view, page))

    def next_page(self, view: str) -> AppState:
        current = self._page_of(view)
        return self.set_page(view, min(current.total_pages, current.current_page + 1))

    def previous_page(self, view: str) -> AppState:
        current = self._page_of(view)
        return self.set_page(view, max(1, current.current_page - 1))

    def _page_of(self, view: str) -> Page:
        pages = {
            "student_view": self.students_page,
            "course_view": self.courses_page,
            "roster_view": self.roster_page,
        }
        if view not in pages:
            raise ValueError(f"Unknown list view: {view}")
        return pages[view]()

    def students_page(self) -> Page:
        state = self.state
        students = filtered_students(state.students, state.grades, state.student_view)
        page = paginate(students, settings.STUDENT_PAGE_SIZE, state.student_view.page)
        by_student = grades_by_student(state.grades)
        rows = [StudentRow(student, len(by_student.get(student.id, []))) for student in page.items]
        return replace(page, items=rows)

    def courses_page(self) -> Page:
        state = self.state
        courses = filtered_courses(state.courses, state.course_view)
        page = paginate(courses, settings.COURSE_PAGE_SIZE, state.course_view.page)
        faculty_by_id = {member.id: member for member in state.faculty}
        counts = enrollment_by_course(state.grades)
        rows = []
        for course in page.items:
            names = [faculty_by_id[i].name for i in course.faculty_ids if i in faculty_by_id]
            rows.append(CourseRow(course, ", ".join(names), counts.get(course.id, 0)))
        return replace(page, items=rows)

    def roster_page(self) -> Page:
        state = self.state
        roster = filtered_roster(state.grades, state.students, state.courses, state.roster_view)
        return paginate(roster, settings.ROSTER_PAGE_SIZE, state.roster_view.page)

    # Summaries

    def dashboard_summary(self) -> DashboardSummary:
        state = self.state
        return summarize_dashboard(state.students, state.courses, state.faculty, state.grades)

    def reports(self) -> ReportsView:
        state = self.state
        return summarize_reports(state.students, state.courses, state.grades)

    def student_profile(self, student_id: int) -> Optional[StudentProfile]:
        state = self.state
        student = next((s for s in state.students if s.id == student_id), None)
        if student is None:
            return None
        grades = grades_by_student(state.grades).get(student_id, [])
        courses_by_id = {course.id: course for course in state.courses}
        enrolled = [(grade, courses_by_id[grade.course_id]) for grade in grades if grade.course_id in courses_by_id]
        return StudentProfile(
            student=student,
            enrolled=enrolled,
            average_score=average_score(grades),
            gpa=calculate_gpa(grades),
            courses_enrolled=len(grades),
        )

    # Optimistic commands

    async def run(self, command: OptimisticCommand) -> bool:
        """Apply ``command`` optimistically; undo its change if the store rejects it."""
        self.state = command.apply(self.state)
        try:
            result = await command.execute(self.api)
        except REMOTE_ERRORS as exc:
            logger.error(f"Failed to {command.description}: {exc}", exc_info=True)
            self.state = replace(command.revert(self.state), error=f"Failed to {command.description}: {exc}")
            return False
        self.state = command.reconcile(self.state, result)
        return True

    async def delete_student(self, student_id: int) -> bool:
        return await self.run(DeleteStudent(student_id))

    async def delete_course(self, course_id: int) -> bool:
        return await self.run(DeleteCourse(course_id))

    # Grade flows

    async def assign_grade(self, student_id: int, course_id: int, score: float):
        """Enroll a student in a course with a starting score."""
        validate_score(score)
        now = _now()
        payload = GradeCreate(student_id=student_id, course_id=course_id, score=score, created_at=now, updated_at=now)
        try:
            created = await self.api.create_grade(payload)
        except REMOTE_ERRORS as exc:
            logger.error(f"Failed to assign student {student_id} to course {course_id}: {exc}")
            self.dispatch(Notify(error=f"Failed to assign student: {exc}"))
            return None
        self.dispatch(GradesAdded((created,)))
        self.dispatch(Notify(message="Student assigned to course."))
        return created

    async def update_grade(self, student_id: int, course_id: int, score: float):
        """Change the score of an existing enrollment, found by student and course."""
        validate_score(score)
        grade = next(
            (g for g in self.state.grades if g.student_id == student_id and g.course_id == course_id),
            None,
        )
        if grade is None:
            self.dispatch(Notify(error="No existing enrollment found for that student/course pair."))
            return None
        try:
            updated = await self.api.update_grade(grade.id, GradeUpdate(score=score, updated_at=_now()))
        except REMOTE_ERRORS as exc:
            logger.error(f"Failed to update grade {grade.id}: {exc}")
            self.dispatch(Notify(error=f"Failed to update grade: {exc}"))
            return None
        self.dispatch(GradeReplaced(updated))
        self.dispatch(Notify(message="Grade updated successfully."))
        return updated

    async def bulk_enroll(self, rows: Iterable[Tuple[int, int, float]]) -> BulkOutcome:
        """
        Create one grade per (student_id, course_id, score) row, concurrently.

        Every score is validated before any call is made. Grades that were
        created are added to the state even when others failed; the failures
        are reported in the returned outcome and in ``state.error``.
        """
        rows = list(rows)
        if not rows:
            raise ValueError("Add at least one enrollment")
        for _, _, score in rows:
            validate_score(score)

        now = _now()
        outcome = await run_bulk(
            rows,
            lambda row: self.api.create_grade(
                GradeCreate(student_id=row[0], course_id=row[1], score=row[2], created_at=now, updated_at=now)
            ),
        )
        self.dispatch(GradesAdded(tuple(outcome.results)))
        if outcome.ok:
            self.dispatch(Notify(message="Bulk enrollments completed."))
        else:
            self.dispatch(Notify(error=f"{len(outcome.failed)} of {outcome.total} enrollments failed"))
        return outcome

    # Student and course flows

    async def create_student(self, payload: StudentCreate, grades: Iterable[Tuple[int, float]] = ()):
        """Create a student, then enroll them in ``(course_id, score)`` pairs."""
        grades = list(grades)
        for _, score in grades:
            validate_score(score)

        now = _now()
        if payload.created_at is None:
            payload = StudentCreate(**payload.model_dump(exclude={"created_at"}), created_at=now)
        try:
            student = await self.api.create_student(payload)
        except REMOTE_ERRORS as exc:
            logger.error(f"Failed to create student: {exc}")
            self.dispatch(Notify(error=f"Failed to create student: {exc}"))
            return None, BulkOutcome()

        self.dispatch(StudentSaved(student))
        outcome = await self._create_grades(student.id, grades, now)
        return student, outcome

    async def update_student(self, student_id: int, payload: StudentUpdate, grades: Iterable[Tuple[int, float]] = ()):
        """Update a student and replace their grades with ``(course_id, score)`` pairs."""
        grades = list(grades)
        for _, score in grades:
            validate_score(score)

        now = _now()
        try:
            student = await self.api.update_student(student_id, payload)
            existing = await self.api.get_grades_by_student(student_id)
        except REMOTE_ERRORS as exc:
            logger.error(f"Failed to update student {student_id}: {exc}")
            self.dispatch(Notify(error=f"Failed to update student: {exc}"))
            return None, BulkOutcome()

        self.dispatch(StudentSaved(student))
        removed = await run_bulk(existing, lambda grade: self.api.delete_grade(grade.id))
        self.dispatch(GradesRemoved(frozenset(grade.id for grade, _ in removed.succeeded)))
        created = await self._create_grades(student_id, grades, now, previous=removed)
        return student, removed.merge(created)

    async def _create_grades(self, student_id: int, grades: list, now: datetime, previous: Optional[BulkOutcome] = None) -> BulkOutcome:
        outcome = await run_bulk(
            grades,
            lambda pair: self.api.create_grade(
                GradeCreate(student_id=student_id, course_id=pair[0], score=pair[1], created_at=now, updated_at=now)
            ),
        )
        self.dispatch(GradesAdded(tuple(outcome.results)))
        failed = len(outcome.failed) + (len(previous.failed) if previous else 0)
        if failed:
            self.dispatch(Notify(error=f"{failed} grade change(s) could not be saved"))
        else:
            self.dispatch(Notify(message="Student saved."))
        return outcome

    async def create_course(self, payload: CourseCreate):
        if payload.created_at is None:
            payload = CourseCreate(**payload.model_dump(exclude={"created_at"}), created_at=_now())
        try:
            course = await self.api.create_course(payload)
        except REMOTE_ERRORS as exc:
            logger.error(f"Failed to create course: {exc}")
            self.dispatch(Notify(error=f"Failed to create course: {exc}"))
            return None
        self.dispatch(CourseSaved(course))
        self.dispatch(Notify(message="Course saved."))
        return course

    async def update_course(self, course_id: int, payload: CourseUpdate):
        try:
            course = await self.api.update_course(course_id, payload)
        except REMOTE_ERRORS as exc:
            logger.error(f"Failed to update course {course_id}: {exc}")
            self.dispatch(Notify(error=f"Failed to update course: {exc}"))
            return None
        self.dispatch(CourseSaved(course))
        self.dispatch(Notify(message="Course saved."))
        return course

    # Exports

    def export_enrollment_report(self, directory: Optional[str] = None):
        rows = monthly_enrollment_rows(self.reports().monthly_enrollments)
        return export_csv(ENROLLMENT_REPORT_FILENAME, rows, directory or settings.EXPORT_DIR)

    def export_top_students(self, directory: Optional[str] = None):
        rows = top_student_rows(self.reports().top_by_course)
        return export_csv(TOP_STUDENTS_FILENAME, rows, directory or settings.EXPORT_DIR)
