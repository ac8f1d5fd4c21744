"""
tests/conftest.py

Shared fixtures and roster builders for the seating tests.
"""
import logging
from typing import List

import pytest

from exam_seating.models import Student, Hall, HallSeating, HallState
from exam_seating import utils


def build_students(prefix: str, count: int, cohort: str = None, branch: str = None,
                   subject: str = None, batch: str = None, start: int = 1) -> List[Student]:
    """Builds `count` students with roll numbers prefix1..prefixN."""
    return [
        Student(
            roll_number=f"{prefix}{i}",
            name=f"Student {prefix}{i}",
            branch=branch,
            cohort=cohort,
            batch=batch,
            subjects=(subject,) if subject else (),
        )
        for i in range(start, start + count)
    ]


def build_seating(hall: Hall, mode: int, rows: List[List[Student]],
                  state: HallState = HallState.RANDOMIZED) -> HallSeating:
    """Places students left to right, skipping aisle slots, and moves the hall to `state`."""
    seating = HallSeating(hall, mode)
    columns = utils.seat_columns(hall.columns, mode)
    for r, row in enumerate(rows):
        for col, student in zip(columns, row):
            seating.place(r, col, student)
    path = [HallState.EMPTY, HallState.ALLOCATED, HallState.RANDOMIZED, HallState.REPAIRED,
            HallState.EVALUATED, HallState.FINAL]
    for step in path[1:path.index(state) + 1]:
        seating.transition(step)
    return seating


@pytest.fixture
def make_students():
    return build_students


@pytest.fixture
def seating_from_rows():
    return build_seating


@pytest.fixture
def two_cohorts() -> List[Student]:
    """30 second-years and 30 third-years."""
    return (
        build_students("Y2-", 30, cohort="2", branch="CSE", subject="CS201")
        + build_students("Y3-", 30, cohort="3", branch="ECE", subject="EC301")
    )


@pytest.fixture
def restore_logging():
    """Undo any handlers the CLI installs on the root logger."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
