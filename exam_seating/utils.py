"""
exam_seating/utils.py
"""
import re
from typing import List, Tuple

# --- Bench Geometry ---
BENCH_WIDTH: int = 3
SEATS_PER_BENCH_MODES: Tuple[int, int] = (2, 3)
AISLE_POSITION: int = 1  # middle slot of a bench, left empty in 2-per-bench mode

# --- Engine Defaults ---
DEFAULT_MAX_ATTEMPTS: int = 10
DEFAULT_REPAIR_PASSES: int = 50
DEFAULT_SWAP_TRIALS: int = 2000
DEFAULT_QUALITY_THRESHOLD: float = 100.0

UNKNOWN_GROUP: str = "Unknown"
COHORT_LABELS: Tuple[str, str] = ("A", "B")


def benches_per_row(columns: int) -> int:
    return columns // BENCH_WIDTH

def usable_columns(columns: int) -> int:
    """Logical columns that belong to a complete bench."""
    return benches_per_row(columns) * BENCH_WIDTH

def bench_number(col: int) -> int:
    """1-based bench number of a 0-based logical column."""
    return col // BENCH_WIDTH + 1

def seat_in_bench(col: int) -> int:
    """1-based seat position of a 0-based logical column inside its bench."""
    return col % BENCH_WIDTH + 1

def is_aisle(col: int, mode: int) -> bool:
    return mode == 2 and col % BENCH_WIDTH == AISLE_POSITION

def seat_columns(columns: int, mode: int) -> List[int]:
    """
    Returns the logical column indexes that may hold a student in one row,
    left to right, for the given seats-per-bench mode.
    """
    return [
        col for col in range(usable_columns(columns))
        if not is_aisle(col, mode)
    ]

def seat_label(row: int, col: int) -> str:
    return f"R{row + 1}-B{bench_number(col)}-S{seat_in_bench(col)}"

def natural_key(value: str) -> List:
    """
    Sort key that orders embedded numbers numerically,
    so '21CS9' comes before '21CS10'.
    """
    parts = re.split(r'(\d+)', value or "")
    return [int(p) if p.isdigit() else p.lower() for p in parts]

def safe_sheet_title(name: str) -> str:
    """Excel sheet titles: max 31 chars, no []:*?/\\ characters."""
    cleaned = re.sub(r'[\[\]:*?/\\]', '_', str(name)).strip()
    return cleaned[:31] or "Sheet"
