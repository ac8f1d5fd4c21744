"""
Data loader for exam seating.

Reads hall layouts, one or more student rosters and an optional
parameter,value config file. Column names vary between exports, so each
field accepts a few aliases.
"""

import os
import logging
from typing import List, Dict, Optional, Iterable

import pandas as pd

from .models import Hall, Student
from .engine import EngineConfig
from .exceptions import SeatingError, MalformedRosterError, HallLayoutError

logger = logging.getLogger(__name__)


HALL_COLUMNS = {
    'name': ['HallName', 'RoomName', 'Hall', 'name'],
    'rows': ['Rows', 'rows'],
    'columns': ['Columns', 'Cols', 'columns'],
}

STUDENT_COLUMNS = {
    'roll_number': ['RollNumber', 'Roll Number', 'Roll', 'RollNo', 'roll_number'],
    'name': ['StudentName', 'Student Name', 'Name', 'name'],
    'branch': ['Branch', 'Department', 'branch'],
    'cohort': ['Year', 'year', 'Cohort', 'cohort'],
    'batch': ['Batch', 'batch'],
    'subjects': ['Subject', 'Code', 'Subjects', 'subject'],
}

SUBJECT_SEPARATOR = ';'


def _find_column(df: pd.DataFrame, aliases: List[str]) -> Optional[str]:
    for col_name in aliases:
        if col_name in df.columns:
            return col_name
    return None

def _read_csv(path: str, error_cls) -> pd.DataFrame:
    """Reads a CSV as strings with stripped headers and cells."""
    try:
        df = pd.read_csv(path, dtype=str)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise error_cls(f"Could not parse {path}: {e}", details={"file": path})
    df.columns = df.columns.str.strip()
    for col in df.columns:
        df[col] = df[col].str.strip()
    return df


class SeatingDataLoader:
    """Loads all input data for one seating run."""

    def __init__(self, data_dir: str = 'data'):
        self.data_dir = data_dir
        self.halls: List[Hall] = []
        self.students: List[Student] = []
        self.config: Dict[str, str] = {}
        self.rejected: List[Dict] = []

    def _path(self, path: str) -> str:
        if os.path.isabs(path) or os.path.exists(path):
            return path
        return os.path.join(self.data_dir, path)

    def load_halls(self, path: str = 'halls.csv') -> List[Hall]:
        """Load halls from a CSV with name, rows and columns."""
        path = self._path(path)
        df = _read_csv(path, HallLayoutError)

        columns = {field: _find_column(df, aliases) for field, aliases in HALL_COLUMNS.items()}
        missing = [field for field, col in columns.items() if col is None]
        if missing:
            raise HallLayoutError(
                f"{path}: missing hall column(s): {', '.join(missing)}",
                details={"file": path, "columns": list(df.columns)},
            )

        halls = []
        for _, row in df.iterrows():
            halls.append(Hall(
                name=row[columns['name']],
                rows=row[columns['rows']],
                columns=row[columns['columns']],
            ))

        self.halls = halls
        logger.info("Loaded %d halls from %s", len(halls), path)
        return halls

    def load_roster(self, path: str, strict: bool = True) -> List[Student]:
        """
        Load one roster file. Without a cohort column the file name
        (e.g. 'year2' from year2.csv) is used as every student's cohort.
        """
        path = self._path(path)
        df = _read_csv(path, MalformedRosterError)

        columns = {field: _find_column(df, aliases) for field, aliases in STUDENT_COLUMNS.items()}
        if columns['roll_number'] is None:
            raise MalformedRosterError(
                f"{path}: no roll number column",
                details={"file": path, "columns": list(df.columns)},
            )
        for field in ('name', 'branch', 'batch', 'subjects'):
            if columns[field] is None:
                logger.warning("%s: no %s column", path, field)

        default_cohort = os.path.splitext(os.path.basename(path))[0]

        students = []
        for index, row in df.iterrows():
            def get(field):
                col = columns[field]
                if col is None:
                    return None
                value = row[col]
                return None if pd.isna(value) else value

            subjects = get('subjects')
            try:
                student = Student(
                    roll_number=get('roll_number'),
                    name=get('name'),
                    branch=get('branch'),
                    cohort=get('cohort') or default_cohort,
                    batch=get('batch'),
                    subjects=tuple(subjects.split(SUBJECT_SEPARATOR)) if subjects else (),
                )
            except MalformedRosterError as e:
                if strict:
                    raise MalformedRosterError(
                        f"{path} line {index + 2}: {e.message}",
                        details={"file": path, "line": index + 2},
                    )
                logger.error("%s line %d: %s; record skipped", path, index + 2, e.message)
                self.rejected.append({"file": path, "line": index + 2, "reason": e.message})
                continue
            students.append(student)

        logger.info("Loaded %d students from %s", len(students), path)
        return students

    def load_rosters(self, paths: Iterable[str], strict: bool = True) -> List[Student]:
        """
        Load and concatenate several roster files. In non-strict mode
        records without a roll number, or repeating one already loaded,
        are logged and skipped instead of rejecting the whole roster.
        """
        students: List[Student] = []
        seen = set()
        for path in paths:
            for student in self.load_roster(path, strict):
                if student.roll_number in seen:
                    if strict:
                        raise MalformedRosterError(
                            f"Duplicate roll number {student.roll_number} in {path}",
                            details={"file": path, "roll_number": student.roll_number},
                        )
                    logger.error("Duplicate roll number %s in %s; record skipped", student.roll_number, path)
                    self.rejected.append({"file": path, "roll_number": student.roll_number, "reason": "duplicate"})
                    continue
                seen.add(student.roll_number)
                students.append(student)

        self.students = students
        return students

    def load_config(self, path: Optional[str] = 'seating_config.csv') -> EngineConfig:
        """Load engine parameters from parameter,value rows; defaults if the file is absent."""
        if path is None:
            return EngineConfig()
        path = self._path(path)
        if not os.path.exists(path):
            logger.warning("%s not found, using default engine settings", path)
            return EngineConfig()

        df = _read_csv(path, SeatingError)
        if "parameter" not in df.columns or "value" not in df.columns:
            raise SeatingError(f"{path}: expected parameter,value columns", details={"file": path})
        self.config = {
            str(row['parameter']): None if pd.isna(row['value']) else row['value']
            for _, row in df.iterrows()
            if not pd.isna(row['parameter'])
        }
        logger.info("Loaded %d config parameter(s) from %s", len(self.config), path)
        return EngineConfig.from_mapping(self.config)
