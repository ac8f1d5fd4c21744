"""
exam_seating/evaluator.py

Read-only scoring of seat matrices. A violation is a pair of neighbouring
occupied seats whose occupants share a conflict key. Neighbours are
horizontal (same row, adjacent column); vertical neighbours count only
when check_vertical is set.
"""

from typing import Dict, List, Iterable, Tuple

from .models import HallSeating, Evaluation, Position


def _neighbour_offsets(check_vertical: bool):
    if check_vertical:
        return ((0, -1), (0, 1), (-1, 0), (1, 0))
    return ((0, -1), (0, 1))

def _forward_offsets(check_vertical: bool):
    # Each unordered pair is visited once: right neighbour, then the one below.
    if check_vertical:
        return ((0, 1), (1, 0))
    return ((0, 1),)

def conflicts_at(seating: HallSeating, row: int, col: int,
                 conflict_of: Dict[str, str], check_vertical: bool = False) -> int:
    """Number of neighbours of (row, col) sharing its conflict key."""
    student = seating.get_seat(row, col)
    if student is None:
        return 0
    key = conflict_of[student.roll_number]
    count = 0
    for dr, dc in _neighbour_offsets(check_vertical):
        r, c = row + dr, col + dc
        if 0 <= r < seating.rows and 0 <= c < seating.columns:
            other = seating.get_seat(r, c)
            if other is not None and conflict_of[other.roll_number] == key:
                count += 1
    return count

def local_conflicts(seating: HallSeating, positions: Iterable[Position],
                    conflict_of: Dict[str, str], check_vertical: bool = False) -> int:
    return sum(conflicts_at(seating, r, c, conflict_of, check_vertical) for r, c in positions)

def find_violations(seating: HallSeating, conflict_of: Dict[str, str],
                    check_vertical: bool = False) -> List[Tuple[Position, Position]]:
    """Row-major list of violating (first, second) seat pairs."""
    violations = []
    for row, col, student in seating:
        key = conflict_of[student.roll_number]
        for dr, dc in _forward_offsets(check_vertical):
            r, c = row + dr, col + dc
            if r < seating.rows and c < seating.columns:
                other = seating.get_seat(r, c)
                if other is not None and conflict_of[other.roll_number] == key:
                    violations.append(((row, col), (r, c)))
    return violations

def evaluate(seating: HallSeating, conflict_of: Dict[str, str],
             check_vertical: bool = False) -> Evaluation:
    """Counts violations and filled seats. Does not modify the hall."""
    violation_count = 0
    adjacent_pairs = 0
    filled = 0
    conflicted = set()

    for row, col, student in seating:
        filled += 1
        key = conflict_of[student.roll_number]
        for dr, dc in _forward_offsets(check_vertical):
            r, c = row + dr, col + dc
            if r >= seating.rows or c >= seating.columns:
                continue
            other = seating.get_seat(r, c)
            if other is None:
                continue
            adjacent_pairs += 1
            if conflict_of[other.roll_number] == key:
                violation_count += 1
                conflicted.add((row, col))
                conflicted.add((r, c))

    return Evaluation(
        violation_count=violation_count,
        filled_seats=filled,
        adjacent_pairs=adjacent_pairs,
        conflicts=tuple(sorted(conflicted)),
    )

def evaluate_all(seatings: Iterable[HallSeating], conflict_of: Dict[str, str],
                 check_vertical: bool = False) -> Evaluation:
    """Sums per-hall evaluations into one run-level figure."""
    violations = filled = pairs = 0
    for seating in seatings:
        result = evaluate(seating, conflict_of, check_vertical)
        violations += result.violation_count
        filled += result.filled_seats
        pairs += result.adjacent_pairs
    return Evaluation(violation_count=violations, filled_seats=filled, adjacent_pairs=pairs)
