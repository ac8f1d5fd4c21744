"""
tests/test_cli.py

Tests for the command-line pipeline and its exit codes.
"""
import os

import pytest

from exam_seating.cli import main, EXIT_OK, EXIT_INPUT_ERROR, EXIT_CAPACITY_ERROR


@pytest.fixture
def inputs(tmp_path):
    (tmp_path / "halls.csv").write_text("HallName,Rows,Columns\nLT-1,4,9\nLT-2,4,9\n")
    for year in (2, 3):
        rows = "\n".join(f"{year}0CS{i:02d},Student {i},CSE" for i in range(1, 31))
        (tmp_path / f"year{year}.csv").write_text("RollNumber,StudentName,Branch\n" + rows + "\n")
    return tmp_path


def _args(data_dir, *extra):
    return [
        "--data-dir", str(data_dir),
        "--halls", "halls.csv",
        "--students", "year2.csv", "year3.csv",
        "--output-dir", str(data_dir / "out"),
        "--seed", "1",
        "--log-level", "WARNING",
        *extra,
    ]


def test_full_run(inputs, restore_logging, capsys):
    assert main(_args(inputs, "--exam-name", "Midsem")) == EXIT_OK

    out = capsys.readouterr().out
    assert "Loaded 60 students" in out
    assert "No neighbour conflicts" in out
    for name in ("Seating_Arrangement.xlsx", "Attendance_Sheets.xlsx", "Hall_Summary.xlsx"):
        assert os.path.exists(inputs / "out" / name)


def test_capacity_error_exit_code(inputs, restore_logging, capsys):
    (inputs / "small.csv").write_text("HallName,Rows,Columns\nLT-9,2,6\n")
    args = _args(inputs)
    args[args.index("halls.csv")] = "small.csv"

    assert main(args) == EXIT_CAPACITY_ERROR
    assert "Insufficient bench capacity" in capsys.readouterr().out
    assert not os.path.exists(inputs / "out")


def test_malformed_roster_exit_code(inputs, restore_logging):
    (inputs / "year3.csv").write_text("RollNumber,StudentName\n,Nobody\n")
    assert main(_args(inputs)) == EXIT_INPUT_ERROR


def test_lenient_skips_bad_records(inputs, restore_logging, capsys):
    with open(inputs / "year3.csv", "a") as f:
        f.write(",Nobody,CSE\n")
    assert main(_args(inputs, "--lenient")) == EXIT_OK
    assert "Skipped 1 malformed record" in capsys.readouterr().out


def test_missing_halls_file(inputs, restore_logging):
    args = _args(inputs)
    args[args.index("halls.csv")] = "missing.csv"
    assert main(args) == EXIT_INPUT_ERROR
