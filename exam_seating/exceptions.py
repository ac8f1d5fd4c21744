"""
exam_seating/exceptions.py
"""
from typing import Optional


class SeatingError(Exception):
    """Base class for all seating engine errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class CapacityError(SeatingError):
    """Raised when no seats-per-bench mode fits the roster. Fatal, never retried."""
    def __init__(self, total_students: int, total_benches: int):
        max_capacity = total_benches * 3
        super().__init__(
            f"Insufficient bench capacity: {total_students} students, "
            f"{total_benches} benches (max {max_capacity} seats at 3 per bench)",
            details={
                "total_students": total_students,
                "total_benches": total_benches,
                "max_capacity": max_capacity,
                "shortfall": total_students - max_capacity,
            },
        )


class MalformedRosterError(SeatingError):
    """Raised when a roster record has no roll number or repeats one."""


class HallLayoutError(SeatingError):
    """Raised when hall geometry is invalid or hall names repeat."""


class SeatingStateError(SeatingError):
    """Raised on an illegal hall state transition or a write to a FINAL hall."""
