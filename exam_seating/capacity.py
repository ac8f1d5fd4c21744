"""
exam_seating/capacity.py

Decides how many students share a bench, globally and per hall, and
repacks halls to 2-per-bench wherever that costs no capacity.
"""

import logging
from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass

from .models import Hall, HallSeating
from .allocator import AllocationContext, allocate_hall
from .partitioner import KeyFn
from .exceptions import CapacityError, HallLayoutError, SeatingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityPlan:
    mode: int
    total_benches: int
    total_students: int
    per_hall_capacity: Dict[str, int]

    @property
    def capacity(self) -> int:
        return self.total_benches * self.mode


def check_halls(halls: List[Hall]):
    """Hall names must be unique within a run."""
    seen = set()
    for hall in halls:
        if hall.name in seen:
            raise HallLayoutError(f"Duplicate hall name: {hall.name}", details={"hall": hall.name})
        seen.add(hall.name)
        if hall.benches == 0:
            logger.warning("Hall %s has fewer than 3 columns and no usable bench", hall.name)

def plan_capacity(halls: List[Hall], total_students: int) -> CapacityPlan:
    """
    Two per bench when it fits, else three, else CapacityError.
    Nothing is allocated before this check passes.
    """
    total_benches = sum(hall.benches for hall in halls)

    if 2 * total_benches >= total_students:
        mode = 2
    elif 3 * total_benches >= total_students:
        mode = 3
    else:
        raise CapacityError(total_students, total_benches)

    logger.info(
        "Capacity: %d students, %d benches -> %d per bench (%d seats)",
        total_students, total_benches, mode, total_benches * mode
    )
    return CapacityPlan(
        mode=mode,
        total_benches=total_benches,
        total_students=total_students,
        per_hall_capacity={hall.name: hall.capacity(mode) for hall in halls},
    )


def repack_to_two(seatings: List[HallSeating], group_of: Dict[str, str],
                  conflict_key: Optional[KeyFn] = None) -> List[HallSeating]:
    """
    Re-seats the combined occupants of `seatings` at 2 per bench, filling
    the halls in the given order with the same striping rule.
    """
    students = [student for seating in seatings for student in seating.occupants()]
    context = AllocationContext.from_students(students, group_of)

    repacked = []
    for seating in seatings:
        new_seating, context = allocate_hall(seating.hall, context, seating.hall_index, 2, conflict_key)
        repacked.append(new_seating)

    if not context.exhausted():
        names = ", ".join(s.hall.name for s in seatings)
        raise SeatingError(
            f"Repacking {names} to 2 per bench left {context.total_remaining} students unseated",
            details={"halls": names, "remaining": context.total_remaining},
        )
    return repacked

def downgrade_partial_halls(seatings: List[HallSeating], group_of: Dict[str, str],
                            conflict_key: Optional[KeyFn] = None) -> List[HallSeating]:
    """A 3-per-bench hall whose population fits at 2 per bench is repacked on its own."""
    result = []
    for seating in seatings:
        if seating.mode == 3 and seating.filled_seats <= seating.hall.capacity(2):
            logger.debug(
                "Hall %s: %d students fit at 2 per bench, repacking",
                seating.hall.name, seating.filled_seats
            )
            seating = repack_to_two([seating], group_of, conflict_key)[0]
        result.append(seating)
    return result

def _find_mergeable_pair(seatings: List[HallSeating]) -> Optional[Tuple[int, int]]:
    for i in range(len(seatings)):
        for j in range(i + 1, len(seatings)):
            first, second = seatings[i], seatings[j]
            if first.mode == 2 and second.mode == 2:
                continue
            occupancy = first.filled_seats + second.filled_seats
            if occupancy <= first.hall.capacity(2) + second.hall.capacity(2):
                return i, j
    return None

def rebalance_pairs(seatings: List[HallSeating], group_of: Dict[str, str],
                    conflict_key: Optional[KeyFn] = None) -> List[HallSeating]:
    """
    Merges any pair of halls, at least one of them at 3 per bench, whose
    combined population fits both halls at 2 per bench, and repacks both.
    Every merge removes a 3-per-bench hall, so the loop terminates.
    """
    seatings = list(seatings)
    pair = _find_mergeable_pair(seatings)
    while pair is not None:
        i, j = pair
        logger.debug("Merging halls %s and %s at 2 per bench", seatings[i].hall.name, seatings[j].hall.name)
        seatings[i], seatings[j] = repack_to_two([seatings[i], seatings[j]], group_of, conflict_key)
        pair = _find_mergeable_pair(seatings)
    return seatings
