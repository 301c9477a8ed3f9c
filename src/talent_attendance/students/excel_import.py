from __future__ import annotations

import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import pandas as pd

from ..common.validators import optional_int
from ..core.constants import EXCEL_PREVIEW_ROWS
from ..core.enums import Grade
from ..core.exceptions import ValidationError
from ..departments.service import DepartmentService
from .repository import StudentRepository

logger = logging.getLogger(__name__)

MAPPING_KEYS = ("name", "baptismName", "grade", "department", "phone")

# Header keywords -> mapping key, checked in this order for each header.
_HEADER_KEYWORDS = (
    ("name", ("이름",)),
    ("baptismName", ("세례", "영명")),
    ("grade", ("학년",)),
    ("department", ("부서",)),
    ("phone", ("연락", "전화", "핸드폰", "휴대")),
)

_SEPARATORS = re.compile(r"[,/]")
_HANGUL_WORD = re.compile(r"^[가-힣]+$")


class ImportRejected(ValidationError):
    """No usable row in the sheet; ``errors`` lists the per-row problems."""

    def __init__(self, message: str, errors: list[str]):
        super().__init__(message)
        self.errors = errors


def cell_text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_grade(raw: str) -> Optional[Grade]:
    """Map free text such as "3반 첫영성체" or "1학년 2반" onto a grade."""

    if not raw:
        return None
    for grade in Grade:
        if grade.value in raw:
            return grade
    return None


def split_name_and_baptism(raw: str) -> tuple[str, Optional[str]]:
    """Split "홍길동 베드로" into ("홍길동", "베드로").

    The first Hangul-only word is the name; everything after it is the
    baptismal name.
    """

    cleaned = _SEPARATORS.sub(" ", raw or "").strip()
    parts = cleaned.split()
    if len(parts) < 2:
        return cleaned, None

    name_parts: list[str] = []
    baptism_parts: list[str] = []
    for part in parts:
        if _HANGUL_WORD.match(part) and not name_parts:
            name_parts.append(part)
        elif name_parts:
            baptism_parts.append(part)
        else:
            name_parts.append(part)
    return "".join(name_parts), (" ".join(baptism_parts) or None)


def suggest_mapping(headers: list[str]) -> dict[str, int]:
    mapping = {key: 0 for key in MAPPING_KEYS}
    for col, header in enumerate(headers, start=1):
        lower = header.lower()
        for key, words in _HEADER_KEYWORDS:
            if any(w in lower for w in words):
                if not mapping[key]:
                    mapping[key] = col
                break
    return mapping


def read_workbook(data: bytes) -> dict[str, pd.DataFrame]:
    if not data:
        raise ValidationError("파일을 업로드해주세요.")
    try:
        return pd.read_excel(io.BytesIO(data), sheet_name=None, header=None, dtype=object, engine="openpyxl")
    except (ValueError, KeyError, OSError, zipfile.BadZipFile) as e:
        raise ValidationError("엑셀 파일을 읽을 수 없습니다.") from e


def _rows(frame: pd.DataFrame) -> list[list[str]]:
    return [[cell_text(v) for v in row] for row in frame.itertuples(index=False, name=None)]


@dataclass(frozen=True)
class SheetPreview:
    index: int
    name: str
    headers: list[str]
    sample_rows: list[list[str]]
    row_count: int
    suggested_mapping: dict[str, int]

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "name": self.name,
            "headers": self.headers,
            "sampleRows": self.sample_rows,
            "rowCount": self.row_count,
            "suggestedMapping": self.suggested_mapping,
        }


def preview_workbook(data: bytes) -> list[SheetPreview]:
    previews: list[SheetPreview] = []
    for index, (sheet_name, frame) in enumerate(read_workbook(data).items()):
        rows = _rows(frame)
        first = rows[0] if rows else []
        headers = [h or f"열{c}" for c, h in enumerate(first, start=1)]
        samples = [r for r in rows[1 : 1 + EXCEL_PREVIEW_ROWS] if any(r)]
        previews.append(
            SheetPreview(
                index=index,
                name=str(sheet_name),
                headers=headers,
                sample_rows=samples,
                row_count=len(rows),
                suggested_mapping=suggest_mapping(headers),
            )
        )
    return previews


@dataclass(frozen=True)
class ParsedStudent:
    row_number: int
    name: str
    grade: Grade
    baptism_name: Optional[str] = None
    phone: Optional[str] = None
    department_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "row": self.row_number,
            "name": self.name,
            "baptismName": self.baptism_name,
            "grade": self.grade.value,
            "phone": self.phone,
            "departmentName": self.department_name,
        }


@dataclass
class ImportResult:
    created: int = 0
    skipped: list[dict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    departments_created: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": f"{self.created}명의 학생이 등록되었습니다.",
            "created": self.created,
            "skipped": len(self.skipped),
            "errors": len(self.errors),
            "departmentsCreated": self.departments_created,
            "details": {"skipped": self.skipped, "errors": self.errors},
        }


def _default_mapping(header: list[str]) -> dict[str, int]:
    mapping = {key: 0 for key in MAPPING_KEYS}
    mapping.update(name=2, grade=3, phone=4)
    for col, value in enumerate(header, start=1):
        if "이름" in value:
            mapping["name"] = col
        elif "학년" in value:
            mapping["grade"] = col
        elif "연락" in value or "전화" in value:
            mapping["phone"] = col
    return mapping


def parse_rows(
    rows: list[list[str]],
    *,
    mapping: Optional[Mapping[str, Any]] = None,
    header_row: int = 1,
) -> tuple[list[ParsedStudent], list[str]]:
    """Turn sheet rows into students; ``mapping`` holds 1-based columns, 0 for none."""

    if mapping:
        cols = {key: optional_int(mapping.get(key), key) or 0 for key in MAPPING_KEYS}
        if any(col < 0 for col in cols.values()):
            raise ValidationError("열 매핑 형식이 올바르지 않습니다.")
    else:
        cols = _default_mapping(rows[0] if rows else [])

    def cell(row: list[str], key: str) -> str:
        col = cols[key]
        return row[col - 1] if 0 < col <= len(row) else ""

    parsed: list[ParsedStudent] = []
    errors: list[str] = []

    for row_number, row in enumerate(rows, start=1):
        if row_number <= header_row:
            continue

        raw_name = cell(row, "name")
        raw_grade = cell(row, "grade")
        if not raw_name and not raw_grade:
            continue
        if not raw_name:
            errors.append(f"{row_number}행: 이름이 없습니다.")
            continue
        if not raw_grade:
            errors.append(f"{row_number}행: 학년이 없습니다.")
            continue

        grade = normalize_grade(raw_grade)
        if not grade:
            errors.append(f"{row_number}행: 유효하지 않은 학년입니다 ({raw_grade}).")
            continue

        if cols["baptismName"]:
            name = _SEPARATORS.sub(" ", raw_name).split()[0] if raw_name.strip() else raw_name
            baptism_name = cell(row, "baptismName") or None
        else:
            name, baptism_name = split_name_and_baptism(raw_name)

        if not name:
            errors.append(f"{row_number}행: 이름을 파싱할 수 없습니다 ({raw_name}).")
            continue

        parsed.append(
            ParsedStudent(
                row_number=row_number,
                name=name,
                grade=grade,
                baptism_name=baptism_name,
                phone=cell(row, "phone") or None,
                department_name=cell(row, "department") or None,
            )
        )

    return parsed, errors


class StudentImportService:
    """Bulk-register students from an uploaded .xlsx roster."""

    def __init__(self, students: StudentRepository, departments: DepartmentService):
        self._students = students
        self._departments = departments

    def preview(self, data: bytes) -> list[SheetPreview]:
        return preview_workbook(data)

    def import_workbook(
        self,
        data: bytes,
        *,
        mapping: Optional[Mapping[str, Any]] = None,
        sheet_index: int = 0,
        header_row: int = 1,
    ) -> ImportResult:
        sheets = list(read_workbook(data).values())
        if not 0 <= sheet_index < len(sheets):
            raise ValidationError("유효한 워크시트가 없습니다.")

        parsed, errors = parse_rows(_rows(sheets[sheet_index]), mapping=mapping, header_row=header_row)
        if errors and not parsed:
            raise ImportRejected("유효한 데이터가 없습니다.", errors)

        result = ImportResult(errors=errors)

        department_ids: dict[str, int] = {}
        for name in sorted({p.department_name for p in parsed if p.department_name}):
            department, created = self._departments.get_or_create(name)
            department_ids[name] = department.department_id
            if created:
                result.departments_created.append(name)

        for p in sorted(parsed, key=lambda s: (s.grade.order, s.name)):
            department_id = department_ids.get(p.department_name) if p.department_name else None
            existing = self._students.find_by_name_and_grade(name=p.name, grade=p.grade)

            if existing:
                if department_id and existing.department_id != department_id:
                    self._students.update(existing.student_id, {"department_id": department_id})
                    result.skipped.append({**p.to_dict(), "reason": "기존 학생 부서 업데이트됨"})
                else:
                    result.skipped.append({**p.to_dict(), "reason": "이미 존재하는 학생"})
                continue

            self._students.create(
                name=p.name,
                grade=p.grade,
                baptism_name=p.baptism_name,
                department_id=department_id,
                phone=p.phone,
            )
            result.created += 1

        logger.info(
            "student import: created=%d skipped=%d errors=%d departments_created=%d",
            result.created,
            len(result.skipped),
            len(result.errors),
            len(result.departments_created),
        )
        return result
