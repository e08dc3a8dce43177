from types import SimpleNamespace

import pytest

from reporting import group_by_student
from views import (
    JoinedRow, ListView, course_predicate, filter_rows, join_grades, paginate,
    roster_predicate, student_predicate, text_matches,
)


def make_student(student_id, first_name, last_name, email=None, year="Junior"):
    return SimpleNamespace(
        id=student_id,
        first_name=first_name,
        last_name=last_name,
        email=email or f"{first_name.lower()}@example.com",
        year=year,
    )


def make_course(course_id, code, title, department="Computer Science"):
    return SimpleNamespace(id=course_id, code=code, title=title, department=department)


def make_grade(grade_id, student_id, course_id, score=80):
    return SimpleNamespace(id=grade_id, student_id=student_id, course_id=course_id, score=score)


STUDENTS = [
    make_student(1, "Maya", "Chen", year="Junior"),
    make_student(2, "Liam", "Johnson", year="Freshman"),
    make_student(3, "Sofia", "Garcia", year="Senior"),
]
COURSES = [
    make_course(10, "CS101", "Introduction to Programming"),
    make_course(20, "MATH150", "Calculus I", "Mathematics"),
]
GRADES = [
    make_grade(1, 1, 10),
    make_grade(2, 2, 20),
    make_grade(3, 1, 20),
]


# ============= JOIN TESTS =============

def test_join_grades():
    rows = join_grades(GRADES, STUDENTS, COURSES)
    assert len(rows) == 3
    assert rows[0] == JoinedRow(GRADES[0], STUDENTS[0], COURSES[0])
    assert [row.grade.id for row in rows] == [1, 2, 3]


def test_join_drops_orphaned_grades():
    """Test grades whose student or course was deleted are skipped, not fatal"""
    grades = GRADES + [make_grade(4, 99, 10), make_grade(5, 1, 99)]
    rows = join_grades(grades, STUDENTS, COURSES)
    assert [row.grade.id for row in rows] == [1, 2, 3]


def test_join_empty():
    assert join_grades([], STUDENTS, COURSES) == []


# ============= PAGINATION TESTS =============

def test_paginate_empty():
    page = paginate([], 6, 4)
    assert page.items == []
    assert page.current_page == 1
    assert page.total_pages == 1
    assert page.first_index == 0
    assert page.last_index == 0
    assert not page.has_next
    assert not page.has_previous


def test_paginate_pages():
    items = list(range(1, 14))
    page = paginate(items, 6, 2)
    assert page.items == [7, 8, 9, 10, 11, 12]
    assert page.total_pages == 3
    assert page.total_items == 13
    assert page.first_index == 7
    assert page.last_index == 12
    assert page.has_previous and page.has_next

    last = paginate(items, 6, 3)
    assert last.items == [13]
    assert last.first_index == 13
    assert last.last_index == 13
    assert not last.has_next


def test_paginate_clamps_page_number():
    items = list(range(10))
    assert paginate(items, 4, 99).current_page == 3
    assert paginate(items, 4, 0).current_page == 1
    assert paginate(items, 4, -5).items == [0, 1, 2, 3]


@pytest.mark.parametrize("size", [1, 3, 6, 8, 50])
def test_pages_concatenate_to_filtered_sequence(size):
    """Test walking every page yields the filtered rows once each, in order"""
    rows = join_grades(GRADES * 5, STUDENTS, COURSES)
    filtered = filter_rows(rows, roster_predicate("cs101"))
    total_pages = paginate(filtered, size, 1).total_pages
    walked = []
    for number in range(1, total_pages + 1):
        walked.extend(paginate(filtered, size, number).items)
    assert walked == filtered


def test_paginate_rejects_bad_page_size():
    with pytest.raises(ValueError):
        paginate([1, 2], 0, 1)


# ============= FILTER TESTS =============

def test_text_matches():
    assert text_matches("", "anything")
    assert text_matches(None, "anything")
    assert text_matches("CHEN", "Maya Chen")
    assert not text_matches("xyz", "Maya Chen", None)


def test_student_predicate_search():
    found = filter_rows(STUDENTS, student_predicate("liam"))
    assert [s.id for s in found] == [2]
    by_email = filter_rows(STUDENTS, student_predicate("sofia@"))
    assert [s.id for s in by_email] == [3]


def test_student_predicate_year_and_course():
    by_student = group_by_student(GRADES)
    seniors = filter_rows(STUDENTS, student_predicate(year="Senior"))
    assert [s.id for s in seniors] == [3]

    in_calculus = filter_rows(STUDENTS, student_predicate(course_id=20, grades_by_student=by_student))
    assert [s.id for s in in_calculus] == [1, 2]

    combined = filter_rows(STUDENTS, student_predicate("maya", "Junior", 20, by_student))
    assert [s.id for s in combined] == [1]


def test_student_predicate_blank_year_means_all_years():
    assert filter_rows(STUDENTS, student_predicate(year="")) == STUDENTS


def test_course_predicate():
    assert [c.id for c in filter_rows(COURSES, course_predicate("math"))] == [20]
    assert [c.id for c in filter_rows(COURSES, course_predicate("programming"))] == [10]
    assert filter_rows(COURSES, course_predicate("")) == COURSES


def test_roster_predicate():
    rows = join_grades(GRADES, STUDENTS, COURSES)
    assert [row.grade.id for row in filter_rows(rows, roster_predicate("calculus"))] == [2, 3]
    assert [row.grade.id for row in filter_rows(rows, roster_predicate("johnson"))] == [2]


# ============= LIST VIEW TESTS =============

def test_filter_change_resets_page():
    view = ListView().with_page(3)
    assert view.page == 3
    changed = view.with_filters(search="maya")
    assert changed.page == 1
    assert changed.search == "maya"


def test_unchanged_filter_keeps_page():
    view = ListView(search="maya", page=3)
    assert view.with_filters(search="maya") is view


def test_with_filters_rejects_unknown_names():
    with pytest.raises(TypeError):
        ListView().with_filters(colour="red")


def test_with_page_floor():
    assert ListView().with_page(0).page == 1
