"""
tests/test_models.py

Unit tests for roster records, hall geometry and the seat arena.
"""
import pytest

from exam_seating.models import Student, Hall, HallSeating, HallState, Evaluation, Allocation
from exam_seating.exceptions import MalformedRosterError, HallLayoutError, SeatingStateError


def test_student_requires_roll_number():
    with pytest.raises(MalformedRosterError):
        Student(roll_number="  ", name="No Roll")
    with pytest.raises(MalformedRosterError):
        Student(roll_number=None)


def test_student_normalizes_fields():
    student = Student(roll_number=" 21CS001 ", name=" Asha ", branch="cse",
                      cohort="nan", subjects=("cs201", " ", "ma101"))
    assert student.roll_number == "21CS001"
    assert student.name == "Asha"
    assert student.branch == "CSE"
    assert student.cohort is None
    assert student.subjects == ("CS201", "MA101")
    assert student.subject == "CS201"


def test_hall_geometry():
    hall = Hall("H1", 4, 10)
    assert hall.benches_per_row == 3
    assert hall.benches == 12
    assert hall.capacity(2) == 24
    assert hall.capacity(3) == 36


@pytest.mark.parametrize("rows, columns", [(0, 9), (4, -3), ("four", 9)])
def test_hall_rejects_bad_dimensions(rows, columns):
    with pytest.raises(HallLayoutError):
        Hall("H1", rows, columns)


def test_aisle_slot_cannot_be_filled_in_mode_two(make_students):
    seating = HallSeating(Hall("H1", 1, 6), mode=2)
    student = make_students("S", 1)[0]
    with pytest.raises(SeatingStateError):
        seating.place(0, 1, student)
    seating.place(0, 0, student)
    assert seating.get_seat(0, 0) is student


def test_partial_bench_columns_stay_empty(make_students):
    seating = HallSeating(Hall("H1", 1, 7), mode=3)
    with pytest.raises(SeatingStateError):
        seating.place(0, 6, make_students("S", 1)[0])


def test_state_machine_rejects_skipped_stages():
    seating = HallSeating(Hall("H1", 1, 3), mode=3)
    with pytest.raises(SeatingStateError):
        seating.transition(HallState.REPAIRED)
    seating.transition(HallState.ALLOCATED)
    seating.transition(HallState.RANDOMIZED)
    seating.transition(HallState.REPAIRED)
    seating.transition(HallState.EVALUATED)
    seating.freeze()
    assert seating.state == HallState.FINAL


def test_final_hall_is_read_only(make_students, seating_from_rows):
    students = make_students("S", 3, cohort="A")
    seating = seating_from_rows(Hall("H1", 1, 3), 3, [students], state=HallState.FINAL)
    with pytest.raises(SeatingStateError):
        seating.place(0, 0, None)
    with pytest.raises(SeatingStateError):
        seating.swap((0, 0), (0, 1))


def test_copy_shares_students_not_grid(make_students, seating_from_rows):
    students = make_students("S", 3)
    seating = seating_from_rows(Hall("H1", 1, 3), 3, [students])
    clone = seating.copy()
    clone.swap((0, 0), (0, 2))
    assert seating.get_seat(0, 0) is students[0]
    assert clone.get_seat(0, 0) is students[2]
    assert clone.state == seating.state


def test_seats_by_row_labels_bench_and_seat(make_students, seating_from_rows):
    students = make_students("S", 4, cohort="2")
    seating = seating_from_rows(Hall("H1", 1, 6), 2, [students])
    row = seating.to_dict()["seatsByRow"][0]
    assert [(s["bench"], s["seat"]) for s in row] == [(1, 1), (1, 3), (2, 1), (2, 3)]
    assert row[0]["roll"] == "S1"
    assert row[0]["cohort"] == "2"


def test_evaluation_score():
    assert Evaluation(violation_count=1, filled_seats=4, adjacent_pairs=4).score == 75.0
    assert Evaluation(violation_count=0, filled_seats=1).score == 100.0


def test_allocation_lookup_and_report(make_students, seating_from_rows):
    students = make_students("S", 3)
    seating = seating_from_rows(Hall("H1", 1, 3), 3, [students])
    seating.evaluation = Evaluation(violation_count=0, filled_seats=3, adjacent_pairs=2)
    allocation = Allocation(halls={"H1": seating}, mode=3, strategy="cohort", total_students=3)

    assert allocation.find_student("S2") == ("H1", 0, 1)
    assert allocation.find_student("missing") is None

    data = allocation.to_dict()
    assert data["report"]["totalStudents"] == 3
    assert data["report"]["violationCount"] == 0
    assert data["halls"]["H1"]["mode"] == 3
    assert len(data["allocationId"]) == 32
