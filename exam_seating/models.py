"""
exam_seating/models.py

Data models for the seating engine: roster records, hall geometry,
the per-hall seat arena and the finished allocation.
"""

import uuid
from enum import Enum
from typing import List, Optional, Dict, Tuple, Iterator
from dataclasses import dataclass, field

from . import utils
from .exceptions import MalformedRosterError, HallLayoutError, SeatingStateError

Position = Tuple[int, int]


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return None
    return text


@dataclass(frozen=True)
class Student:
    """
    One exam candidate. Immutable once loaded; the roll number is the
    unique key and is required.
    """
    roll_number: str
    name: Optional[str] = None
    branch: Optional[str] = None
    cohort: Optional[str] = None
    batch: Optional[str] = None
    subjects: Tuple[str, ...] = ()

    def __post_init__(self):
        roll = _clean(self.roll_number)
        if roll is None:
            raise MalformedRosterError(
                "Student record has no roll number",
                details={"name": self.name, "branch": self.branch},
            )
        object.__setattr__(self, "roll_number", roll)
        object.__setattr__(self, "name", _clean(self.name))
        branch = _clean(self.branch)
        object.__setattr__(self, "branch", branch.upper() if branch else None)
        object.__setattr__(self, "cohort", _clean(self.cohort))
        object.__setattr__(self, "batch", _clean(self.batch))
        codes = [_clean(s) for s in (self.subjects or ())]
        object.__setattr__(self, "subjects", tuple(c.upper() for c in codes if c))

    @property
    def subject(self) -> Optional[str]:
        """The primary subject code, i.e. the paper being sat."""
        return self.subjects[0] if self.subjects else None

    def __repr__(self):
        return f"Student({self.roll_number}, {self.name})"


@dataclass(frozen=True)
class Hall:
    """
    An exam hall: R rows of C logical columns, grouped into benches of 3.
    """
    name: str
    rows: int
    columns: int

    def __post_init__(self):
        name = _clean(self.name)
        if name is None:
            raise HallLayoutError("Hall record has no name")
        try:
            rows = int(self.rows)
            columns = int(self.columns)
        except (TypeError, ValueError):
            raise HallLayoutError(
                f"Hall {name}: rows/columns must be integers",
                details={"rows": self.rows, "columns": self.columns},
            )
        if rows <= 0 or columns <= 0:
            raise HallLayoutError(
                f"Hall {name}: rows and columns must be positive",
                details={"rows": rows, "columns": columns},
            )
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "rows", rows)
        object.__setattr__(self, "columns", columns)

    @property
    def benches_per_row(self) -> int:
        return utils.benches_per_row(self.columns)

    @property
    def benches(self) -> int:
        return self.rows * self.benches_per_row

    def capacity(self, mode: int) -> int:
        """Seats available when `mode` students share each bench."""
        return self.benches * mode


class HallState(Enum):
    EMPTY = "EMPTY"
    ALLOCATED = "ALLOCATED"
    RANDOMIZED = "RANDOMIZED"
    REPAIRED = "REPAIRED"
    EVALUATED = "EVALUATED"
    FINAL = "FINAL"


# Repacking re-enters ALLOCATED; repair may run more than once.
_TRANSITIONS: Dict[HallState, Tuple[HallState, ...]] = {
    HallState.EMPTY: (HallState.ALLOCATED,),
    HallState.ALLOCATED: (HallState.ALLOCATED, HallState.RANDOMIZED),
    HallState.RANDOMIZED: (HallState.REPAIRED,),
    HallState.REPAIRED: (HallState.REPAIRED, HallState.EVALUATED),
    HallState.EVALUATED: (HallState.FINAL,),
    HallState.FINAL: (),
}


@dataclass(frozen=True)
class Evaluation:
    """Result of one read-only scan of a hall (or a whole run)."""
    violation_count: int
    filled_seats: int
    adjacent_pairs: int = 0
    conflicts: Tuple[Position, ...] = ()

    @property
    def score(self) -> float:
        """Percentage of occupied neighbour pairs that do not conflict."""
        if self.adjacent_pairs == 0:
            return 100.0
        return 100.0 * (1 - self.violation_count / self.adjacent_pairs)

    def to_dict(self) -> Dict:
        return {
            "violationCount": self.violation_count,
            "filledSeats": self.filled_seats,
        }


class HallSeating:
    """
    Index-addressed seat arena for one hall: grid[row][col] holds a
    Student or None. Columns are logical bench slots.
    """

    def __init__(self, hall: Hall, mode: int, hall_index: int = 0):
        if mode not in utils.SEATS_PER_BENCH_MODES:
            raise ValueError(f"Unsupported seats-per-bench mode: {mode}")
        self.hall = hall
        self.mode = mode
        self.hall_index = hall_index
        self.grid: List[List[Optional[Student]]] = [
            [None for _ in range(hall.columns)]
            for _ in range(hall.rows)
        ]
        self.state = HallState.EMPTY
        self.evaluation: Optional[Evaluation] = None
        self.repair_passes = 0

    @property
    def rows(self) -> int:
        return self.hall.rows

    @property
    def columns(self) -> int:
        return self.hall.columns

    # --- State ---

    def transition(self, new_state: HallState):
        if new_state not in _TRANSITIONS[self.state]:
            raise SeatingStateError(
                f"Hall {self.hall.name}: cannot move from {self.state.value} to {new_state.value}"
            )
        self.state = new_state

    def freeze(self):
        self.transition(HallState.FINAL)

    def _check_writable(self):
        if self.state == HallState.FINAL:
            raise SeatingStateError(f"Hall {self.hall.name} is FINAL and cannot be modified")

    # --- Seats ---

    def get_seat(self, row: int, col: int) -> Optional[Student]:
        return self.grid[row][col]

    def place(self, row: int, col: int, student: Optional[Student]):
        """Writes one seat. Aisle slots and partial-bench columns stay empty."""
        self._check_writable()
        if student is not None:
            if col >= utils.usable_columns(self.columns):
                raise SeatingStateError(
                    f"Hall {self.hall.name}: column {col} is outside the last full bench"
                )
            if utils.is_aisle(col, self.mode):
                raise SeatingStateError(
                    f"Hall {self.hall.name}: column {col} is an aisle slot in 2-per-bench mode"
                )
        self.grid[row][col] = student

    def swap(self, first: Position, second: Position):
        self._check_writable()
        (r1, c1), (r2, c2) = first, second
        self.grid[r1][c1], self.grid[r2][c2] = self.grid[r2][c2], self.grid[r1][c1]

    def occupied_positions(self) -> List[Position]:
        """Row-major list of filled seats."""
        return [
            (r, c)
            for r in range(self.rows)
            for c in range(self.columns)
            if self.grid[r][c] is not None
        ]

    def occupants(self) -> List[Student]:
        return [self.grid[r][c] for r, c in self.occupied_positions()]

    def __iter__(self) -> Iterator[Tuple[int, int, Student]]:
        for r, c in self.occupied_positions():
            yield r, c, self.grid[r][c]

    @property
    def filled_seats(self) -> int:
        return len(self.occupied_positions())

    def copy(self) -> "HallSeating":
        """Copies the grid; Student references are shared, never duplicated."""
        clone = HallSeating(self.hall, self.mode, self.hall_index)
        clone.grid = [list(row) for row in self.grid]
        clone.state = self.state
        clone.evaluation = self.evaluation
        clone.repair_passes = self.repair_passes
        return clone

    # --- Output ---

    def seats_by_row(self) -> List[List[Dict]]:
        rows = []
        for r in range(self.rows):
            row_seats = []
            for c in range(self.columns):
                student = self.grid[r][c]
                if student is None:
                    continue
                row_seats.append({
                    "roll": student.roll_number,
                    "name": student.name,
                    "branch": student.branch,
                    "subject": student.subject,
                    "cohort": student.cohort,
                    "batch": student.batch,
                    "bench": utils.bench_number(c),
                    "seat": utils.seat_in_bench(c),
                    "column": c + 1,
                })
            rows.append(row_seats)
        return rows

    def to_dict(self) -> Dict:
        return {
            "rows": self.rows,
            "columns": self.columns,
            "mode": self.mode,
            "seatsByRow": self.seats_by_row(),
        }

    def __repr__(self):
        return f"HallSeating({self.hall.name}, mode={self.mode}, filled={self.filled_seats})"


@dataclass
class RunReport:
    """Run-level report handed back with every allocation."""
    mode: int
    total_students: int
    violation_count: int
    attempts: int = 1
    halls: Dict[str, Dict] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "mode": self.mode,
            "totalStudents": self.total_students,
            "violationCount": self.violation_count,
            "attempts": self.attempts,
            "halls": self.halls,
        }


@dataclass
class Allocation:
    """
    Every hall's seat matrix for one exam run; the unit that gets
    persisted and rendered.
    """
    halls: Dict[str, HallSeating]
    mode: int
    strategy: str
    total_students: int
    attempts: int = 1
    exam_name: Optional[str] = None
    allocation_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def violation_count(self) -> int:
        return sum(
            seating.evaluation.violation_count
            for seating in self.halls.values()
            if seating.evaluation is not None
        )

    def seated_students(self) -> List[Student]:
        students = []
        for seating in self.halls.values():
            students.extend(seating.occupants())
        return students

    def find_student(self, roll_number: str) -> Optional[Tuple[str, int, int]]:
        """Returns (hall name, row, col) for a roll number, or None."""
        for hall_name, seating in self.halls.items():
            for r, c, student in seating:
                if student.roll_number == roll_number:
                    return hall_name, r, c
        return None

    def report(self) -> RunReport:
        hall_reports = {}
        for hall_name, seating in self.halls.items():
            evaluation = seating.evaluation
            hall_reports[hall_name] = {
                "mode": seating.mode,
                "filledSeats": seating.filled_seats,
                "violationCount": evaluation.violation_count if evaluation else 0,
                "repairPasses": seating.repair_passes,
            }
        return RunReport(
            mode=self.mode,
            total_students=self.total_students,
            violation_count=self.violation_count,
            attempts=self.attempts,
            halls=hall_reports,
        )

    def to_dict(self) -> Dict:
        return {
            "allocationId": self.allocation_id,
            "examName": self.exam_name,
            "strategy": self.strategy,
            "halls": {name: seating.to_dict() for name, seating in self.halls.items()},
            "report": self.report().to_dict(),
        }

    def __repr__(self):
        return f"Allocation({len(self.halls)} halls, {self.total_students} students, mode={self.mode})"
