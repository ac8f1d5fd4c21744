"""
Export seating allocations to Excel and JSON.
Sheets follow the printed hall layout: WINDOW at the front, DOOR at the back.
"""

import os
import json
import logging
from typing import List, Dict, Tuple

import openpyxl
from openpyxl.styles import PatternFill, Font, Alignment, Border, Side
from openpyxl.utils import get_column_letter

from .models import Allocation, HallSeating, Student
from . import utils

logger = logging.getLogger(__name__)


THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)
BAND_FILL = PatternFill(start_color="D3D3D3", end_color="D3D3D3", fill_type="solid")
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
CONFLICT_FILL = PatternFill(start_color="F4CCCC", end_color="F4CCCC", fill_type="solid")

ATTENDANCE_HEADERS = ['No', 'Roll Number', 'Student Name', 'Branch', 'Subject', 'Cohort', 'Seat', 'Signature']
SUMMARY_HEADERS = ['Hall', 'Cohort', 'Batch', 'Group', 'From Roll', 'To Roll', 'Count']
MASTER_HEADERS = ['Hall', 'Group', 'Count', 'Roll Numbers']

# Attribute shown in the summary's Group column, per strategy.
GROUP_FIELDS = {
    'cohort': lambda s: s.cohort,
    'branch': lambda s: s.branch,
    'subject': lambda s: s.subject,
}


def _write_header_row(ws, row: int, headers: List[str]):
    for col_idx, header in enumerate(headers, 1):
        cell = ws.cell(row, col_idx, header)
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = THIN_BORDER

def _band(ws, row: int, width: int, label: str):
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=width)
    cell = ws.cell(row, 1)
    cell.value = label
    cell.font = Font(size=11, bold=True)
    cell.alignment = Alignment(horizontal='center', vertical='center')
    cell.fill = BAND_FILL


class SeatingExporter:
    """Exports one allocation: seating grids, attendance sheets, hall summary and JSON."""

    def __init__(self, allocation: Allocation):
        self.allocation = allocation

    def export_all(self, output_dir: str = 'output/seating') -> List[str]:
        """Writes every output file and returns their paths."""
        os.makedirs(output_dir, exist_ok=True)
        written = [
            self.export_seating(os.path.join(output_dir, 'Seating_Arrangement.xlsx')),
            self.export_attendance(os.path.join(output_dir, 'Attendance_Sheets.xlsx')),
            self.export_summary(os.path.join(output_dir, 'Hall_Summary.xlsx')),
            self.export_json(os.path.join(output_dir, f'allocation_{self.allocation.allocation_id}.json')),
        ]
        for filename in written:
            logger.info("Exported %s", filename)
        return written

    # --- Seating grid ---

    def export_seating(self, filename: str) -> str:
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for hall_name, seating in self.allocation.halls.items():
            ws = wb.create_sheet(title=utils.safe_sheet_title(hall_name))
            self._format_hall_seating(ws, seating)
        wb.save(filename)
        return filename

    def _format_hall_seating(self, ws, seating: HallSeating):
        """One hall as printed for the door: benches of three across, rows front to back."""
        width = max(seating.columns, 3)
        conflicts = set(seating.evaluation.conflicts) if seating.evaluation else set()

        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=width)
        cell = ws['A1']
        cell.value = self.allocation.exam_name or "Exam Seating"
        cell.font = Font(size=12, bold=True)

        ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=width)
        cell = ws['A2']
        cell.value = f"Hall {seating.hall.name} | {seating.mode} per bench | {seating.filled_seats} students"
        cell.font = Font(size=12, bold=True)

        ws.merge_cells(start_row=3, start_column=1, end_row=3, end_column=width)
        cell = ws['A3']
        violations = seating.evaluation.violation_count if seating.evaluation else 0
        cell.value = f"Conflicts: {violations}"
        cell.font = Font(size=10, italic=True)

        current_row = 5
        _band(ws, current_row, width, "WINDOW")
        current_row += 1

        # Bench labels over each run of three columns
        for bench in range(seating.hall.benches_per_row):
            start = bench * utils.BENCH_WIDTH + 1
            ws.merge_cells(start_row=current_row, start_column=start,
                           end_row=current_row, end_column=start + utils.BENCH_WIDTH - 1)
            cell = ws.cell(current_row, start, f"B{bench + 1}")
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal='center')
        current_row += 1

        for r in range(seating.rows):
            for c in range(seating.columns):
                student = seating.get_seat(r, c)
                cell = ws.cell(current_row, c + 1, student.roll_number if student else "")
                cell.alignment = Alignment(horizontal='center', vertical='center')
                cell.border = THIN_BORDER
                if (r, c) in conflicts:
                    cell.fill = CONFLICT_FILL
            current_row += 1

        _band(ws, current_row, width, "DOOR")

        for col in range(1, width + 1):
            ws.column_dimensions[get_column_letter(col)].width = 15

    # --- Attendance ---

    def export_attendance(self, filename: str) -> str:
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for hall_name, seating in self.allocation.halls.items():
            ws = wb.create_sheet(title=utils.safe_sheet_title(hall_name))
            self._format_attendance(ws, seating)
        wb.save(filename)
        return filename

    def _format_attendance(self, ws, seating: HallSeating):
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(ATTENDANCE_HEADERS))
        cell = ws['A1']
        title = self.allocation.exam_name or "Attendance"
        cell.value = f"{title} - Hall {seating.hall.name}"
        cell.font = Font(size=14, bold=True)
        cell.alignment = Alignment(horizontal="center", vertical="center")

        _write_header_row(ws, 3, ATTENDANCE_HEADERS)

        entries = sorted(
            ((r, c, s) for r, c, s in seating),
            key=lambda e: (e[2].cohort or "", e[2].subject or "", utils.natural_key(e[2].roll_number))
        )
        row = 4
        for no, (r, c, student) in enumerate(entries, 1):
            values = [
                no,
                student.roll_number,
                student.name or "",
                student.branch or "",
                student.subject or "",
                student.cohort or "",
                utils.seat_label(r, c),
                "",
            ]
            for col_idx, value in enumerate(values, 1):
                cell = ws.cell(row, col_idx, value)
                cell.border = THIN_BORDER
                cell.alignment = Alignment(vertical="center")
            row += 1

        for col_idx, width in enumerate([6, 16, 30, 10, 12, 10, 12, 20], 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

    # --- Summary ---

    def summary_rows(self) -> List[Dict]:
        """
        Door-display ranges: per hall, students grouped by cohort, batch and
        strategy group, each with its first and last roll in natural order.
        """
        group_field = GROUP_FIELDS.get(self.allocation.strategy, GROUP_FIELDS['cohort'])
        rows = []
        for hall_name, seating in self.allocation.halls.items():
            buckets: Dict[Tuple[str, str, str], List[Student]] = {}
            for student in seating.occupants():
                key = (
                    student.cohort or utils.UNKNOWN_GROUP,
                    student.batch or "",
                    group_field(student) or utils.UNKNOWN_GROUP,
                )
                buckets.setdefault(key, []).append(student)

            for (cohort, batch, group) in sorted(buckets, key=lambda k: tuple(utils.natural_key(p) for p in k)):
                members = sorted(buckets[(cohort, batch, group)], key=lambda s: utils.natural_key(s.roll_number))
                rows.append({
                    'Hall': hall_name,
                    'Cohort': cohort,
                    'Batch': batch,
                    'Group': group,
                    'From Roll': members[0].roll_number,
                    'To Roll': members[-1].roll_number,
                    'Count': len(members),
                })
        return rows

    def export_summary(self, filename: str) -> str:
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Summary"

        _write_header_row(ws, 1, SUMMARY_HEADERS)
        for row, entry in enumerate(self.summary_rows(), 2):
            for col_idx, header in enumerate(SUMMARY_HEADERS, 1):
                cell = ws.cell(row, col_idx, entry[header])
                cell.border = THIN_BORDER
        for col_idx in range(1, len(SUMMARY_HEADERS) + 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = 15

        self._format_report(wb.create_sheet(title="Report"))
        self._format_master_plan(wb.create_sheet(title="Master Plan"))
        wb.save(filename)
        return filename

    def _format_report(self, ws):
        report = self.allocation.report()
        ws.cell(1, 1, "Seats per bench").font = Font(bold=True)
        ws.cell(1, 2, report.mode)
        ws.cell(2, 1, "Total students").font = Font(bold=True)
        ws.cell(2, 2, report.total_students)
        ws.cell(3, 1, "Violations").font = Font(bold=True)
        ws.cell(3, 2, report.violation_count)
        ws.cell(4, 1, "Attempts").font = Font(bold=True)
        ws.cell(4, 2, report.attempts)

        _write_header_row(ws, 6, ['Hall', 'Mode', 'Filled Seats', 'Violations', 'Repair Passes'])
        for row, (hall_name, info) in enumerate(report.halls.items(), 7):
            values = [hall_name, info['mode'], info['filledSeats'], info['violationCount'], info['repairPasses']]
            for col_idx, value in enumerate(values, 1):
                ws.cell(row, col_idx, value).border = THIN_BORDER
        ws.column_dimensions['A'].width = 18

    def master_plan_rows(self) -> List[Dict]:
        """Every seated roll per hall, listed by subject for elective runs and by branch otherwise."""
        field = GROUP_FIELDS['subject'] if self.allocation.strategy == 'subject' else GROUP_FIELDS['branch']
        rows = []
        for hall_name, seating in self.allocation.halls.items():
            buckets: Dict[str, List[str]] = {}
            for student in seating.occupants():
                buckets.setdefault(field(student) or utils.UNKNOWN_GROUP, []).append(student.roll_number)
            for group in sorted(buckets, key=utils.natural_key):
                rolls = sorted(buckets[group], key=utils.natural_key)
                rows.append({
                    'Hall': hall_name,
                    'Group': group,
                    'Count': len(rolls),
                    'Roll Numbers': ", ".join(rolls),
                })
        return rows

    def _format_master_plan(self, ws):
        _write_header_row(ws, 1, MASTER_HEADERS)
        for row, entry in enumerate(self.master_plan_rows(), 2):
            for col_idx, header in enumerate(MASTER_HEADERS, 1):
                cell = ws.cell(row, col_idx, entry[header])
                cell.border = THIN_BORDER
                cell.alignment = Alignment(vertical="top", wrap_text=(header == 'Roll Numbers'))
        for col_idx, width in enumerate([15, 15, 8, 80], 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width

    # --- JSON ---

    def export_json(self, filename: str) -> str:
        with open(filename, 'w', encoding='utf-8') as f:
            json.dump(self.allocation.to_dict(), f, indent=2)
        return filename
