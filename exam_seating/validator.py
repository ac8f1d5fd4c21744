"""
Checks a finished allocation for structural problems.
Run after every engine run and before exporting.
"""

import logging
from collections import Counter
from typing import List

from .models import Allocation, Student
from . import utils

logger = logging.getLogger(__name__)


def validate_allocation(allocation: Allocation, students: List[Student]) -> List[str]:
    """Returns human-readable issues; an empty list means the allocation is sound."""
    issues = []
    seated = allocation.seated_students()

    if len(seated) != len(students):
        issues.append(
            f"Seated {len(seated)} students but the roster has {len(students)}"
        )

    counts = Counter(s.roll_number for s in seated)
    duplicates = sorted((roll for roll, n in counts.items() if n > 1), key=utils.natural_key)
    if duplicates:
        issues.append(f"Seated more than once: {', '.join(duplicates)}")

    missing = sorted(
        (s.roll_number for s in students if s.roll_number not in counts),
        key=utils.natural_key,
    )
    if missing:
        issues.append(f"Not seated: {', '.join(missing)}")

    for hall_name, seating in allocation.halls.items():
        usable = utils.usable_columns(seating.columns)
        for row, col, student in seating:
            if col >= usable:
                issues.append(
                    f"{hall_name}: {student.roll_number} sits beyond the last full bench (column {col + 1})"
                )
            elif utils.is_aisle(col, seating.mode):
                issues.append(
                    f"{hall_name}: {student.roll_number} sits on an aisle slot ({utils.seat_label(row, col)})"
                )

    return issues


def validate_all(allocation: Allocation, students: List[Student]) -> bool:
    """Logs a PASSED/FAILED report and returns whether the allocation is sound."""
    issues = validate_allocation(allocation, students)

    if allocation.violation_count:
        logger.warning(
            "Allocation has %d adjacency violation(s)", allocation.violation_count
        )

    if not issues:
        logger.info(
            "Validation PASSED: %d students in %d hall(s)",
            allocation.total_students, len(allocation.halls)
        )
        return True

    logger.error("Validation FAILED with %d issue(s)", len(issues))
    for i, issue in enumerate(issues, 1):
        logger.error("  %d. %s", i, issue)
    return False
