"""
exam_seating/partitioner.py

Splits a roster into named groups and builds the reverse lookup maps
used by the allocator, the optimizer and the exporters.
"""

import logging
from typing import List, Dict, Callable, Optional, Iterable
from dataclasses import dataclass

from .models import Student
from .exceptions import MalformedRosterError
from . import utils

logger = logging.getLogger(__name__)

KeyFn = Callable[[Student], Optional[str]]


def check_unique_rolls(students: Iterable[Student]):
    """Every roll number may be seated once; repeats reject the roster."""
    seen = set()
    duplicates = []
    for student in students:
        if student.roll_number in seen:
            duplicates.append(student.roll_number)
        seen.add(student.roll_number)
    if duplicates:
        raise MalformedRosterError(
            f"Duplicate roll numbers in roster: {', '.join(sorted(set(duplicates), key=utils.natural_key))}",
            details={"duplicates": duplicates},
        )

def partition(students: Iterable[Student], key_fn: KeyFn) -> Dict[str, List[Student]]:
    """
    Groups students by key_fn, preserving roster order inside each group.
    Students without a key go to the 'Unknown' group.
    """
    groups: Dict[str, List[Student]] = {}
    for student in students:
        key = key_fn(student) or utils.UNKNOWN_GROUP
        groups.setdefault(key, []).append(student)
    return groups

def group_order(groups: Dict[str, List[Student]]) -> List[str]:
    """Largest group first; ties keep first-appearance order."""
    return sorted(groups, key=lambda k: -len(groups[k]))

def build_key_map(students: Iterable[Student], key_fn: KeyFn) -> Dict[str, str]:
    return {s.roll_number: key_fn(s) or utils.UNKNOWN_GROUP for s in students}

def build_info_map(students: Iterable[Student]) -> Dict[str, Student]:
    return {s.roll_number: s for s in students}


# --- Strategies ---

@dataclass(frozen=True)
class SeatingStrategy:
    """
    One allocation variant: how students are grouped for striping,
    and which attribute must not repeat between neighbours.
    """
    name: str
    group_key: KeyFn
    conflict_key: KeyFn
    guard_bench: bool = False


def _cohort_key(student: Student) -> str:
    return student.cohort or utils.UNKNOWN_GROUP

def cohort_strategy(students: List[Student]) -> SeatingStrategy:
    """
    Two-cohort pairing: exactly two cohorts are relabelled 'A'/'B' in
    first-seen order; any other count keys on the cohort itself.
    """
    cohorts: List[str] = []
    for student in students:
        key = _cohort_key(student)
        if key not in cohorts:
            cohorts.append(key)

    if len(cohorts) == 2:
        labels = dict(zip(cohorts, utils.COHORT_LABELS))
        logger.debug("Cohort pairing: %s", labels)
        key_fn = lambda s: labels[_cohort_key(s)]
    else:
        key_fn = _cohort_key

    return SeatingStrategy("cohort", group_key=key_fn, conflict_key=key_fn)

def branch_strategy(students: List[Student]) -> SeatingStrategy:
    key_fn = lambda s: s.branch
    return SeatingStrategy("branch", group_key=key_fn, conflict_key=key_fn)

def subject_strategy(students: List[Student]) -> SeatingStrategy:
    key_fn = lambda s: s.subject
    return SeatingStrategy("subject", group_key=key_fn, conflict_key=key_fn, guard_bench=True)


STRATEGIES: Dict[str, Callable[[List[Student]], SeatingStrategy]] = {
    "cohort": cohort_strategy,
    "branch": branch_strategy,
    "subject": subject_strategy,
}


def get_strategy(name: str, students: List[Student]) -> SeatingStrategy:
    try:
        factory = STRATEGIES[name.lower().strip()]
    except KeyError:
        raise ValueError(
            f"Unknown seating strategy '{name}'. Choose one of: {', '.join(STRATEGIES)}"
        )
    return factory(students)


# --- Roster ---

@dataclass
class Roster:
    """Partitioned roster for one allocation run."""
    students: List[Student]
    strategy: SeatingStrategy
    groups: Dict[str, List[Student]]
    order: List[str]
    group_of: Dict[str, str]
    conflict_of: Dict[str, str]
    info: Dict[str, Student]

    def __len__(self):
        return len(self.students)


def build_roster(students: List[Student], strategy: SeatingStrategy) -> Roster:
    check_unique_rolls(students)
    groups = partition(students, strategy.group_key)
    order = group_order(groups)

    if utils.UNKNOWN_GROUP in groups:
        logger.warning(
            "%d student(s) have no %s and were grouped as '%s'",
            len(groups[utils.UNKNOWN_GROUP]), strategy.name, utils.UNKNOWN_GROUP
        )
    logger.info(
        "Partitioned %d students into %d %s group(s): %s",
        len(students), len(groups), strategy.name,
        ", ".join(f"{k}={len(groups[k])}" for k in order)
    )

    return Roster(
        students=list(students),
        strategy=strategy,
        groups=groups,
        order=order,
        group_of=build_key_map(students, strategy.group_key),
        conflict_of=build_key_map(students, strategy.conflict_key),
        info=build_info_map(students),
    )
