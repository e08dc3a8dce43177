"""
Score to letter grade and GPA conversion.

Both conversions read the same bucket table, so a score can never map to a
letter from one bucket and a GPA point from another.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from numbers import Real
from typing import Iterable, NamedTuple

from errors import GradeValidationError


class GradeBucket(NamedTuple):
    threshold: float
    letter: str
    gpa: float


# Inclusive lower bounds, highest first. The last bucket catches everything.
GRADE_SCALE = (
    GradeBucket(93, "A", 4.0),
    GradeBucket(90, "A-", 3.7),
    GradeBucket(87, "B+", 3.3),
    GradeBucket(83, "B", 3.0),
    GradeBucket(80, "B-", 2.7),
    GradeBucket(77, "C+", 2.3),
    GradeBucket(73, "C", 2.0),
    GradeBucket(70, "C-", 1.7),
    GradeBucket(67, "D+", 1.3),
    GradeBucket(63, "D", 1.0),
    GradeBucket(60, "D-", 0.7),
    GradeBucket(0, "F", 0.0),
)

MIN_SCORE = 0
MAX_SCORE = 100


def validate_score(score) -> float:
    """Return the score unchanged, or raise GradeValidationError."""
    if isinstance(score, bool) or not isinstance(score, Real):
        raise GradeValidationError(score)
    if math.isnan(score) or score < MIN_SCORE or score > MAX_SCORE:
        raise GradeValidationError(score)
    return score


def grade_bucket(score) -> GradeBucket:
    score = validate_score(score)
    for bucket in GRADE_SCALE:
        if score >= bucket.threshold:
            return bucket
    return GRADE_SCALE[-1]


def score_to_letter(score) -> str:
    return grade_bucket(score).letter


def score_to_gpa(score) -> float:
    return grade_bucket(score).gpa


def calculate_gpa(grades: Iterable) -> float:
    """
    Mean GPA point of the given grades, rounded half-up to 2 decimals.

    Accepts grade objects (anything with a ``score`` attribute) or bare
    scores. An empty collection has a GPA of 0.
    """
    points = [Decimal(str(score_to_gpa(_score_of(grade)))) for grade in grades]
    if not points:
        return 0.0
    mean = sum(points) / len(points)
    return float(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def average_score(grades: Iterable) -> int:
    """Whole-number mean score, rounded half-up. 0 when there are no grades."""
    scores = [Decimal(str(_score_of(grade))) for grade in grades]
    if not scores:
        return 0
    mean = sum(scores) / len(scores)
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_student_name(student) -> str:
    return f"{student.first_name} {student.last_name}"


def _score_of(grade):
    return grade.score if hasattr(grade, "score") else grade
