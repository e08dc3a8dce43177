"""
Bulk calls and optimistic commands used by the dashboard controller.

A bulk operation issues its calls concurrently and reports every outcome
instead of stopping at the first failure. An optimistic command changes the
local state first, then talks to the store; when the remote call fails the
command undoes only its own change, so flows that finished meanwhile stay.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Iterable, List, Tuple

from errors import PartialBulkFailure

logger = logging.getLogger(__name__)


@dataclass
class BulkOutcome:
    """Per-item result of a bulk operation, in submission order."""

    succeeded: List[Tuple[object, object]] = field(default_factory=list)
    failed: List[Tuple[object, Exception]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def results(self) -> list:
        return [result for _, result in self.succeeded]

    def merge(self, other: "BulkOutcome") -> "BulkOutcome":
        return BulkOutcome(self.succeeded + other.succeeded, self.failed + other.failed)

    def raise_for_failures(self):
        if self.failed:
            raise PartialBulkFailure(self)


async def run_bulk(items: Iterable, call: Callable[[object], Awaitable]) -> BulkOutcome:
    """Run ``call`` for every item concurrently and collect the outcomes."""
    items = list(items)
    results = await asyncio.gather(*(call(item) for item in items), return_exceptions=True)

    outcome = BulkOutcome()
    for item, result in zip(items, results):
        if isinstance(result, Exception):
            outcome.failed.append((item, result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcome.succeeded.append((item, result))

    if outcome.failed:
        logger.warning(f"Bulk operation: {len(outcome.failed)} of {outcome.total} calls failed")
    return outcome


class OptimisticCommand:
    """
    A state change applied before the store confirms it.

    ``apply`` returns the speculative state, ``execute`` performs the remote
    work and ``reconcile`` folds its result back into the state. If
    ``execute`` raises, ``revert`` takes this command's own change back out
    of whatever the state has become in the meantime.
    """

    description = "operation"

    def apply(self, state):
        raise NotImplementedError

    async def execute(self, api):
        raise NotImplementedError

    def revert(self, state):
        raise NotImplementedError

    def reconcile(self, state, result):
        return state


class CascadeDelete(OptimisticCommand):
    """Remove a record and then, as a second step, the grades that point at it."""

    collection = ""
    grade_field = ""
    label = ""

    def __init__(self, record_id: int):
        self.record_id = record_id
        self.grades = ()
        self._removed = []
        self._removed_grades = []

    def _owns(self, grade) -> bool:
        return getattr(grade, self.grade_field) == self.record_id

    def apply(self, state):
        records, self._removed = _split(getattr(state, self.collection), lambda record: record.id == self.record_id)
        grades, self._removed_grades = _split(state.grades, self._owns)
        self.grades = tuple(grade for _, grade in self._removed_grades)
        return replace(state, **{self.collection: records, "grades": grades})

    async def delete_record(self, api):
        raise NotImplementedError

    async def execute(self, api):
        await self.delete_record(api)
        return await run_bulk(self.grades, lambda grade: api.delete_grade(grade.id))

    def revert(self, state):
        return replace(state, **{
            self.collection: _reinsert(getattr(state, self.collection), self._removed),
            "grades": _reinsert(state.grades, self._removed_grades),
        })

    def reconcile(self, state, outcome: BulkOutcome):
        """Put back the grades whose delete failed; the parent record stays removed."""
        if outcome.ok:
            return state
        failed_ids = {grade.id for grade, _ in outcome.failed}
        leftovers = [(index, grade) for index, grade in self._removed_grades if grade.id in failed_ids]
        return replace(
            state,
            grades=_reinsert(state.grades, leftovers),
            error=f"{self.label} {self.record_id} was removed but {len(leftovers)} of its grade(s) could not be deleted",
        )


class DeleteStudent(CascadeDelete):
    description = "delete student"
    collection = "students"
    grade_field = "student_id"
    label = "Student"

    async def delete_record(self, api):
        await api.delete_student(self.record_id)


class DeleteCourse(CascadeDelete):
    description = "delete course"
    collection = "courses"
    grade_field = "course_id"
    label = "Course"

    async def delete_record(self, api):
        await api.delete_course(self.record_id)


def _split(items, predicate):
    """Return the kept items and the removed ones as (index, item) pairs."""
    kept, removed = [], []
    for index, item in enumerate(items):
        if predicate(item):
            removed.append((index, item))
        else:
            kept.append(item)
    return tuple(kept), removed


def _reinsert(items, removed):
    # Ascending indexes restore the original order when nothing else changed
    present = {item.id for item in items}
    items = list(items)
    for index, item in removed:
        if item.id not in present:
            items.insert(min(index, len(items)), item)
    return tuple(items)
