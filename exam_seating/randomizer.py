"""
exam_seating/randomizer.py
"""

import random
from typing import Dict, List, Optional

from .models import HallSeating, HallState, Position, Student


def randomize_within_groups(seating: HallSeating, group_of: Dict[str, str],
                            rng: Optional[random.Random] = None) -> HallSeating:
    """
    Permutes students among the seats their own group already holds.
    Which group sits where never changes, so group striping survives;
    only the individual (e.g. roll-number order) is shuffled away.
    """
    rng = rng or random.Random()
    result = seating.copy()

    positions_by_group: Dict[str, List[Position]] = {}
    members_by_group: Dict[str, List[Student]] = {}
    for row, col, student in seating:
        key = group_of[student.roll_number]
        positions_by_group.setdefault(key, []).append((row, col))
        members_by_group.setdefault(key, []).append(student)

    for key, positions in positions_by_group.items():
        members = members_by_group[key]
        rng.shuffle(members)
        for (row, col), student in zip(positions, members):
            result.place(row, col, student)

    result.transition(HallState.RANDOMIZED)
    return result
