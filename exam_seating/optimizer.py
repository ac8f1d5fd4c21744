"""
exam_seating/optimizer.py

Constraint repair: removes adjacency violations by swapping occupants.
Only occupied seats are swapped, so aisles and empty seats never move.
Every committed swap is scored on the two seats it touches and kept only
if it does not add conflicts, so repair never increases the violation count.
"""

import logging
import random
from typing import Dict, Optional

from .models import HallSeating, HallState, Position
from .evaluator import find_violations, local_conflicts
from . import utils

logger = logging.getLogger(__name__)


def _try_swap(seating: HallSeating, first: Position, second: Position,
              conflict_of: Dict[str, str], check_vertical: bool, strict: bool) -> bool:
    """Swaps two seats and keeps the swap only if local conflicts drop (or hold, when not strict)."""
    before = local_conflicts(seating, (first, second), conflict_of, check_vertical)
    seating.swap(first, second)
    after = local_conflicts(seating, (first, second), conflict_of, check_vertical)
    if after < before or (not strict and after == before):
        return True
    seating.swap(first, second)
    return False

def _fix_pair(seating: HallSeating, anchor: Position, target: Position,
              conflict_of: Dict[str, str], check_vertical: bool) -> bool:
    """
    First-fit: scans forward from `target` (wrapping round the hall) for an
    occupant whose key differs from the anchor's, and swaps it into `target`.
    """
    anchor_key = conflict_of[seating.get_seat(*anchor).roll_number]
    occupied = seating.occupied_positions()
    split = next((i for i, pos in enumerate(occupied) if pos > target), len(occupied))

    for candidate in occupied[split:] + occupied[:split]:
        if candidate == anchor or candidate == target:
            continue
        if conflict_of[seating.get_seat(*candidate).roll_number] == anchor_key:
            continue
        if _try_swap(seating, target, candidate, conflict_of, check_vertical, strict=True):
            return True
    return False

def _still_violating(seating: HallSeating, first: Position, second: Position,
                     conflict_of: Dict[str, str]) -> bool:
    a = seating.get_seat(*first)
    b = seating.get_seat(*second)
    return a is not None and b is not None and conflict_of[a.roll_number] == conflict_of[b.roll_number]

def _random_swap_trials(seating: HallSeating, conflict_of: Dict[str, str], trials: int,
                        check_vertical: bool, rng: random.Random) -> int:
    """Bounded random swaps, accepted when they do not add conflicts."""
    occupied = seating.occupied_positions()
    if len(occupied) < 2:
        return 0
    remaining = len(find_violations(seating, conflict_of, check_vertical))
    accepted = 0
    for _ in range(trials):
        if remaining == 0:
            break
        first, second = rng.sample(occupied, 2)
        a = seating.get_seat(*first)
        b = seating.get_seat(*second)
        if conflict_of[a.roll_number] == conflict_of[b.roll_number]:
            continue
        before = local_conflicts(seating, (first, second), conflict_of, check_vertical)
        if _try_swap(seating, first, second, conflict_of, check_vertical, strict=False):
            after = local_conflicts(seating, (first, second), conflict_of, check_vertical)
            remaining += after - before
            accepted += 1
    return accepted


def repair(seating: HallSeating, conflict_of: Dict[str, str],
           max_passes: int = utils.DEFAULT_REPAIR_PASSES,
           check_vertical: bool = False,
           swap_trials: int = 0,
           rng: Optional[random.Random] = None) -> HallSeating:
    """
    Runs up to `max_passes` row-major passes. Each violating pair (a, b) is
    fixed by swapping b with the first later occupant whose key differs
    from a's. Stops early when a pass finds nothing to fix or cannot fix
    anything. Leftover violations then get `swap_trials` random swaps.
    Returns a repaired copy; residual violations are left for the evaluator
    to report.
    """
    result = seating.copy()
    passes = 0

    for _ in range(max_passes):
        violations = find_violations(result, conflict_of, check_vertical)
        if not violations:
            break
        passes += 1
        swaps = 0
        for first, second in violations:
            if not _still_violating(result, first, second, conflict_of):
                continue
            if _fix_pair(result, first, second, conflict_of, check_vertical):
                swaps += 1
        logger.debug(
            "Hall %s pass %d: %d violation(s), %d fixed",
            result.hall.name, passes, len(violations), swaps
        )
        if swaps == 0:
            break

    if swap_trials > 0 and find_violations(result, conflict_of, check_vertical):
        accepted = _random_swap_trials(result, conflict_of, swap_trials, check_vertical, rng or random.Random())
        logger.debug("Hall %s: %d random swap(s) accepted", result.hall.name, accepted)

    result.repair_passes = seating.repair_passes + passes
    result.transition(HallState.REPAIRED)
    return result
