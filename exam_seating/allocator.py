"""
exam_seating/allocator.py

Fills each hall's seat matrix from the partitioned groups using a
striping/rotation rule. Group pointers live in an AllocationContext that
is threaded from hall to hall, so every student is placed exactly once.
"""

import logging
from typing import List, Dict, Optional, Sequence, Tuple

from .models import Hall, HallSeating, HallState, Student
from .partitioner import KeyFn, Roster, partition, group_order
from . import utils

logger = logging.getLogger(__name__)


class AllocationContext:
    """
    Ordered groups plus one consumption pointer per group.
    Pointers only move forward and never pass the end of their group.
    """

    def __init__(self, groups: Dict[str, Sequence[Student]], order: List[str],
                 pointers: Optional[Dict[str, int]] = None):
        self.groups: Dict[str, Tuple[Student, ...]] = {k: tuple(v) for k, v in groups.items()}
        self.order = list(order)
        self.pointers: Dict[str, int] = dict(pointers) if pointers else {k: 0 for k in self.order}

    @classmethod
    def from_roster(cls, roster: Roster) -> "AllocationContext":
        return cls(roster.groups, roster.order)

    @classmethod
    def from_students(cls, students: Sequence[Student], group_of: Dict[str, str]) -> "AllocationContext":
        """Regroups an already-seated population, e.g. for repacking."""
        groups = partition(students, lambda s: group_of.get(s.roll_number))
        return cls(groups, group_order(groups))

    def copy(self) -> "AllocationContext":
        # Groups are immutable tuples; only the pointers need a private copy.
        return AllocationContext(self.groups, self.order, self.pointers)

    def remaining(self, key: str) -> int:
        return len(self.groups[key]) - self.pointers[key]

    @property
    def total_remaining(self) -> int:
        return sum(self.remaining(k) for k in self.order)

    def exhausted(self) -> bool:
        return self.total_remaining == 0

    def peek(self, key: str) -> Optional[Student]:
        if self.remaining(key) <= 0:
            return None
        return self.groups[key][self.pointers[key]]

    def take(self, key: str) -> Student:
        if self.remaining(key) <= 0:
            raise IndexError(f"Group {key} is exhausted")
        student = self.groups[key][self.pointers[key]]
        self.pointers[key] += 1
        return student

    def __repr__(self):
        state = ", ".join(f"{k}={self.pointers[k]}/{len(self.groups[k])}" for k in self.order)
        return f"AllocationContext({state})"


def _bench_neighbour(seating: HallSeating, row: int, col: int) -> Optional[Student]:
    """Occupant of the seat directly left of `col` on the same bench, if any.

    In 2-per-bench halls the slot before the far seat is the empty aisle, so
    bench-mates there are not neighbours, matching the evaluator.
    """
    if col % utils.BENCH_WIDTH == 0:
        return None
    return seating.get_seat(row, col - 1)


def _choose_group(context: AllocationContext, preferred: int,
                  avoid_key: Optional[str] = None,
                  conflict_key: Optional[KeyFn] = None) -> Optional[str]:
    """
    Walks the rotation from the preferred group, skipping exhausted groups.
    With a bench guard, a head whose conflict key matches `avoid_key` is
    passed over; if every head matches, the first available group wins.
    """
    n = len(context.order)
    available = [
        context.order[(preferred + k) % n]
        for k in range(n)
        if context.remaining(context.order[(preferred + k) % n]) > 0
    ]
    if not available:
        return None

    if avoid_key is not None and conflict_key is not None:
        for key in available:
            head = context.peek(key)
            if (conflict_key(head) or utils.UNKNOWN_GROUP) != avoid_key:
                return key
    return available[0]


def allocate_hall(hall: Hall, context: AllocationContext, hall_index: int, mode: int,
                  conflict_key: Optional[KeyFn] = None) -> Tuple[HallSeating, AllocationContext]:
    """
    Fills one hall row-major. The group for slot i of row r is
    order[(i + r % 2 + hall_index) mod |order|], falling through to the next
    group in rotation when that one is exhausted.

    Passing `conflict_key` turns on the bench guard: a candidate whose key
    matches the nearest bench-mate to its left is returned to its queue and
    the next group is tried instead.

    Returns the filled hall and a new context; the input context is untouched.
    """
    ctx = context.copy()
    seating = HallSeating(hall, mode, hall_index)
    columns = utils.seat_columns(hall.columns, mode)
    n = len(ctx.order)

    placed = 0
    for row in range(hall.rows):
        if ctx.exhausted():
            break
        parity = row % 2
        for slot, col in enumerate(columns):
            if ctx.exhausted():
                break

            avoid_key = None
            if conflict_key is not None:
                neighbour = _bench_neighbour(seating, row, col)
                if neighbour is not None:
                    avoid_key = conflict_key(neighbour) or utils.UNKNOWN_GROUP

            key = _choose_group(ctx, (slot + parity + hall_index) % n, avoid_key, conflict_key)
            seating.place(row, col, ctx.take(key))
            placed += 1

    seating.transition(HallState.ALLOCATED)
    logger.debug("Hall %s (mode %d): placed %d, remaining %d", hall.name, mode, placed, ctx.total_remaining)
    return seating, ctx


def allocate_halls(halls: List[Hall], context: AllocationContext, modes: Dict[str, int],
                   conflict_key: Optional[KeyFn] = None) -> Tuple[List[HallSeating], AllocationContext]:
    """Folds allocate_hall over the halls in order."""
    seatings = []
    for hall_index, hall in enumerate(halls):
        seating, context = allocate_hall(hall, context, hall_index, modes[hall.name], conflict_key)
        seatings.append(seating)
    return seatings, context
