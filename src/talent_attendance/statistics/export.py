from __future__ import annotations

import io
import logging
from typing import Sequence

import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from ..attendance.model import AttendanceFilter, AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..core.enums import AttendanceType
from ..students.model import Student, StudentFilter
from ..students.repository import StudentRepository
from ..students.service import number_students
from ..talents.repository import TalentRepository
from .service import GroupComparison, StatisticsService, percent

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_GREY = "E0E0E0"
_GREEN = "D4EDDA"
_PURPLE = "E2D5F1"


def _style_sheet(ws, fill: str) -> None:
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.fill = PatternFill(fill_type="solid", fgColor=fill)
    for idx, column in enumerate(ws.iter_cols(min_row=1, max_row=ws.max_row), start=1):
        longest = max((len(str(c.value)) for c in column if c.value is not None), default=4)
        ws.column_dimensions[get_column_letter(idx)].width = min(max(longest + 2, 6), 40)


def _group_frame(rows: Sequence[GroupComparison], label_header: str) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                label_header: r.label,
                "학생수": r.student_count,
                "총출석기록": r.counts.total,
                "출석": r.counts.present,
                "결석": r.counts.absent,
                "출석률(%)": percent(r.counts.present, r.counts.total, digits=None),
            }
            for r in rows
        ],
        columns=[label_header, "학생수", "총출석기록", "출석", "결석", "출석률(%)"],
    )


def attendance_sheet_frame(
    students: Sequence[Student],
    records: Sequence[AttendanceRecord],
    numbers: dict[int, str],
    *,
    group_header: str,
    group_of,
) -> pd.DataFrame:
    """One row per student, one "MM-DD" column per date, O/X/- marks, then totals."""

    dates = sorted({r.attend_date for r in records})
    marks = pd.DataFrame(
        [(r.student_id, r.attend_date, "O" if r.is_present else "X") for r in records],
        columns=["student_id", "date", "mark"],
    )
    grid = (
        marks.pivot(index="student_id", columns="date", values="mark")
        if not marks.empty
        else pd.DataFrame()
    )

    rows = []
    for s in students:
        row = {"번호": numbers.get(s.student_id, ""), "이름": s.name, group_header: group_of(s)}
        present = absent = 0
        for day in dates:
            mark = grid.at[s.student_id, day] if s.student_id in grid.index else None
            mark = mark if isinstance(mark, str) else "-"
            row[day.strftime("%m-%d")] = mark
            if mark == "O":
                present += 1
            elif mark == "X":
                absent += 1
        row["출석"] = present
        row["결석"] = absent
        row["출석률"] = f"{percent(present, present + absent, digits=None)}%" if present + absent else "-"
        rows.append(row)

    columns = ["번호", "이름", group_header, *[d.strftime("%m-%d") for d in dates], "출석", "결석", "출석률"]
    return pd.DataFrame(rows, columns=columns)


class WorkbookExporter:
    """Build the full-data .xlsx download (one sheet per view)."""

    def __init__(
        self,
        students: StudentRepository,
        attendance: AttendanceRepository,
        talents: TalentRepository,
        statistics: StatisticsService,
    ):
        self._students = students
        self._attendance = attendance
        self._talents = talents
        self._statistics = statistics

    def build_frames(self) -> list[tuple[str, pd.DataFrame, str]]:
        students = list(self._students.list(StudentFilter()))
        numbers = number_students(students)
        records = list(self._attendance.list(AttendanceFilter()))
        transactions = self._talents.list_transactions(with_student=True)

        student_frame = pd.DataFrame(
            [
                {
                    "번호": numbers.get(s.student_id, ""),
                    "이름": s.name,
                    "세례명": s.baptism_name or "",
                    "학년": s.grade.value,
                    "부서": s.department.name if s.department else "",
                    "달란트": s.talent,
                }
                for s in students
            ],
            columns=["번호", "이름", "세례명", "학년", "부서", "달란트"],
        )

        attendance_frame = pd.DataFrame(
            [
                {
                    "날짜": r.attend_date.isoformat(),
                    "학생이름": r.student.name if r.student else "",
                    "학년": r.student.grade.value if r.student else "",
                    "부서": r.department.name if r.department else "",
                    "출석타입": f"{r.attendance_type.label}출석",
                    "상태": r.status.label,
                    "달란트": r.talent_given,
                }
                for r in records
            ],
            columns=["날짜", "학생이름", "학년", "부서", "출석타입", "상태", "달란트"],
        )

        talent_frame = pd.DataFrame(
            [
                {
                    "날짜": t.created_at.strftime("%Y-%m-%d %H:%M:%S") if t.created_at else "",
                    "학생이름": t.student.name if t.student else "",
                    "학년": t.student.grade.value if t.student else "",
                    "유형": t.transaction_type.label,
                    "금액": t.amount,
                    "사유": t.reason,
                }
                for t in transactions
            ],
            columns=["날짜", "학생이름", "학년", "유형", "금액", "사유"],
        )

        grade_records = [r for r in records if r.attendance_type == AttendanceType.GRADE]
        dept_records = [r for r in records if r.attendance_type == AttendanceType.DEPARTMENT]
        with_department = sorted(
            (s for s in students if s.department), key=lambda s: (s.department.name, s.grade.order, s.name)
        )

        return [
            ("학생목록", student_frame, _GREY),
            ("출석기록", attendance_frame, _GREY),
            ("학년별통계", _group_frame(self._statistics.grades(), "학년"), _GREY),
            ("부서별통계", _group_frame(self._statistics.departments(), "부서"), _GREY),
            ("달란트내역", talent_frame, _GREY),
            (
                "학년출석현황표",
                attendance_sheet_frame(
                    students, grade_records, numbers, group_header="학년", group_of=lambda s: s.grade.value
                ),
                _GREEN,
            ),
            (
                "부서출석현황표",
                attendance_sheet_frame(
                    with_department, dept_records, numbers, group_header="부서", group_of=lambda s: s.department.name
                ),
                _PURPLE,
            ),
        ]

    def export(self) -> bytes:
        output = io.BytesIO()
        frames = self.build_frames()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            for sheet_name, frame, fill in frames:
                frame.to_excel(writer, index=False, sheet_name=sheet_name)
                _style_sheet(writer.sheets[sheet_name], fill)

        logger.info("workbook exported (%d sheets)", len(frames))
        return output.getvalue()
