"""
exam_seating/engine.py

The seat-allocation pipeline:
  Partitioner -> Capacity Planner -> Allocator -> (downgrade / rebalance)
  -> Randomizer -> Optimizer -> Evaluator -> Allocation.

Each run owns its own groups, pointers and random source, so two engines
never share mutable state.
"""

import logging
import random
import dataclasses
from typing import List, Dict, Optional
from dataclasses import dataclass

from .models import Hall, HallSeating, HallState, Student, Allocation, Evaluation
from .partitioner import Roster, build_roster, get_strategy
from .capacity import CapacityPlan, check_halls, plan_capacity, downgrade_partial_halls, rebalance_pairs
from .allocator import AllocationContext, allocate_halls
from .randomizer import randomize_within_groups
from .optimizer import repair
from .evaluator import evaluate, evaluate_all
from .validator import validate_allocation
from .exceptions import SeatingError
from . import utils

logger = logging.getLogger(__name__)


_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


def _to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


@dataclass(frozen=True)
class EngineConfig:
    """Tunable limits for one engine; see utils for the defaults."""
    max_attempts: int = utils.DEFAULT_MAX_ATTEMPTS
    max_repair_passes: int = utils.DEFAULT_REPAIR_PASSES
    swap_trials: int = utils.DEFAULT_SWAP_TRIALS
    quality_threshold: float = utils.DEFAULT_QUALITY_THRESHOLD
    check_vertical: bool = False
    guard_bench: Optional[bool] = None  # None: follow the strategy
    seed: Optional[int] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.max_repair_passes < 0 or self.swap_trials < 0:
            raise ValueError("max_repair_passes and swap_trials cannot be negative")

    @classmethod
    def from_mapping(cls, values: Dict[str, str]) -> "EngineConfig":
        """Builds a config from string parameters, e.g. a parameter,value CSV."""
        converters = {
            "max_attempts": int,
            "max_repair_passes": int,
            "swap_trials": int,
            "quality_threshold": float,
            "check_vertical": _to_bool,
            "guard_bench": _to_bool,
            "seed": int,
        }
        kwargs = {}
        for param, value in values.items():
            param = str(param).strip()
            if param not in converters:
                logger.warning("Ignoring unknown config parameter: %s", param)
                continue
            if value is None or str(value).strip() == "":
                continue
            kwargs[param] = converters[param](value)
        return cls(**kwargs)

    def with_overrides(self, **overrides) -> "EngineConfig":
        """Returns a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)


class SeatingEngine:
    """
    Allocates one exam's students to the given halls.
    """

    def __init__(self, halls: List[Hall], strategy: str = "cohort",
                 config: Optional[EngineConfig] = None):
        self.halls = list(halls)
        self.strategy_name = strategy
        self.config = config or EngineConfig()
        self.rng = random.Random(self.config.seed)

    def run(self, students: List[Student], exam_name: Optional[str] = None) -> Allocation:
        """
        Seats every student or raises before any seat is filled:
        MalformedRosterError for bad roll numbers, HallLayoutError for bad
        halls, CapacityError when no mode fits. Residual violations are
        reported on the result, never raised.
        """
        check_halls(self.halls)
        strategy = get_strategy(self.strategy_name, students)
        roster = build_roster(students, strategy)
        plan = plan_capacity(self.halls, len(roster))

        guard = self.config.guard_bench
        if guard is None:
            guard = strategy.guard_bench
        guard_key = strategy.conflict_key if guard else None

        base_context = AllocationContext.from_roster(roster)
        best: Optional[List[HallSeating]] = None
        best_eval: Optional[Evaluation] = None
        attempt = 0

        for attempt in range(1, self.config.max_attempts + 1):
            seatings = self._attempt(roster, plan, base_context, guard_key)
            result = evaluate_all(seatings, roster.conflict_of, self.config.check_vertical)
            logger.info(
                "Attempt %d: %d violation(s), score %.1f",
                attempt, result.violation_count, result.score
            )
            if best is None or self._is_better(result, best_eval):
                best, best_eval = seatings, result
            if best_eval.violation_count == 0 or best_eval.score >= self.config.quality_threshold:
                break

        allocation = self._finalize(best, roster, plan, attempt, exam_name)

        issues = validate_allocation(allocation, roster.students)
        if issues:
            raise SeatingError("Allocation failed validation", details={"issues": issues})

        if allocation.violation_count:
            logger.warning(
                "%d adjacency violation(s) remain after %d attempt(s)",
                allocation.violation_count, attempt
            )
        logger.info(
            "Seated %d students in %d hall(s); %d violation(s)",
            allocation.total_students, len(allocation.halls), allocation.violation_count
        )
        return allocation

    @staticmethod
    def _is_better(candidate: Evaluation, incumbent: Evaluation) -> bool:
        return (candidate.violation_count, -candidate.score) < (incumbent.violation_count, -incumbent.score)

    def _attempt(self, roster: Roster, plan: CapacityPlan, base_context: AllocationContext,
                 guard_key) -> List[HallSeating]:
        """One independent allocate -> randomize -> repair trial over all halls."""
        modes = {hall.name: plan.mode for hall in self.halls}
        seatings, context = allocate_halls(self.halls, base_context, modes, guard_key)
        if not context.exhausted():
            raise SeatingError(
                f"{context.total_remaining} students left unseated despite sufficient capacity",
                details={"pointers": dict(context.pointers)},
            )

        if plan.mode == 3:
            seatings = downgrade_partial_halls(seatings, roster.group_of, guard_key)
            seatings = rebalance_pairs(seatings, roster.group_of, guard_key)

        repaired = []
        for seating in seatings:
            seating = randomize_within_groups(seating, roster.group_of, self.rng)
            seating = repair(
                seating, roster.conflict_of,
                max_passes=self.config.max_repair_passes,
                check_vertical=self.config.check_vertical,
                swap_trials=self.config.swap_trials,
                rng=self.rng,
            )
            repaired.append(seating)
        return repaired

    def _finalize(self, seatings: List[HallSeating], roster: Roster, plan: CapacityPlan,
                  attempts: int, exam_name: Optional[str]) -> Allocation:
        halls: Dict[str, HallSeating] = {}
        for seating in seatings:
            seating.evaluation = evaluate(seating, roster.conflict_of, self.config.check_vertical)
            seating.transition(HallState.EVALUATED)
            seating.freeze()
            halls[seating.hall.name] = seating
        return Allocation(
            halls=halls,
            mode=plan.mode,
            strategy=roster.strategy.name,
            total_students=len(roster),
            attempts=attempts,
            exam_name=exam_name,
        )


def allocate(halls: List[Hall], students: List[Student], strategy: str = "cohort",
             config: Optional[EngineConfig] = None, exam_name: Optional[str] = None) -> Allocation:
    """Convenience wrapper: one engine, one run."""
    return SeatingEngine(halls, strategy, config).run(students, exam_name)
