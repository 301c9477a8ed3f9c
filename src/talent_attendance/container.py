from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository, MySQLLedgerRepository
from .attendance.repository import AttendanceRepository, LedgerRepository
from .attendance.service import AttendanceLedgerService, AttendanceQueryService
from .auth.mysql_admin_repository import MySQLAdminAuthRepository
from .auth.repository import AdminAuthRepository
from .auth.service import AdminAuthService
from .core.constants import DEFAULT_ADMIN_PASSWORD, DEFAULT_ATTENDANCE_YEAR
from .database.connection import DBConfig, DatabaseConnection
from .departments.mysql_department_repository import MySQLDepartmentRepository
from .departments.repository import DepartmentRepository
from .departments.service import DepartmentService
from .statistics.export import WorkbookExporter
from .statistics.service import StatisticsService
from .students.excel_import import StudentImportService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository
from .students.service import StudentService
from .talents.mysql_talent_repository import MySQLTalentRepository
from .talents.repository import TalentRepository
from .talents.service import TalentService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    students_repo: StudentRepository
    departments_repo: DepartmentRepository
    attendance_repo: AttendanceRepository
    ledger_repo: LedgerRepository
    talents_repo: TalentRepository
    admin_repo: AdminAuthRepository

    ledger_service: AttendanceLedgerService
    attendance_query_service: AttendanceQueryService
    talent_service: TalentService
    student_service: StudentService
    student_import_service: StudentImportService
    department_service: DepartmentService
    statistics_service: StatisticsService
    workbook_exporter: WorkbookExporter
    admin_auth_service: AdminAuthService


def assemble(
    *,
    students_repo: StudentRepository,
    departments_repo: DepartmentRepository,
    attendance_repo: AttendanceRepository,
    ledger_repo: LedgerRepository,
    talents_repo: TalentRepository,
    admin_repo: AdminAuthRepository,
    attendance_year: int = DEFAULT_ATTENDANCE_YEAR,
    admin_default_password: str = DEFAULT_ADMIN_PASSWORD,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services onto any set of repositories (MySQL or in-memory)."""

    department_service = DepartmentService(departments_repo, students_repo)
    statistics_service = StatisticsService(attendance_repo, students_repo, departments_repo)

    return Container(
        conn=conn,
        students_repo=students_repo,
        departments_repo=departments_repo,
        attendance_repo=attendance_repo,
        ledger_repo=ledger_repo,
        talents_repo=talents_repo,
        admin_repo=admin_repo,
        ledger_service=AttendanceLedgerService(ledger_repo, attendance_year=attendance_year),
        attendance_query_service=AttendanceQueryService(attendance_repo, students_repo),
        talent_service=TalentService(talents_repo, students_repo),
        student_service=StudentService(students_repo, departments_repo, attendance_repo, talents_repo),
        student_import_service=StudentImportService(students_repo, department_service),
        department_service=department_service,
        statistics_service=statistics_service,
        workbook_exporter=WorkbookExporter(students_repo, attendance_repo, talents_repo, statistics_service),
        admin_auth_service=AdminAuthService(admin_repo, default_password=admin_default_password),
    )


def build_container(
    *,
    db_config: dict,
    attendance_year: int = DEFAULT_ATTENDANCE_YEAR,
    admin_default_password: str = DEFAULT_ADMIN_PASSWORD,
) -> Container:
    conn = DatabaseConnection.for_config(DBConfig.from_dict(db_config))

    return assemble(
        students_repo=MySQLStudentRepository(conn),
        departments_repo=MySQLDepartmentRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        ledger_repo=MySQLLedgerRepository(conn),
        talents_repo=MySQLTalentRepository(conn),
        admin_repo=MySQLAdminAuthRepository(conn),
        attendance_year=attendance_year,
        admin_default_password=admin_default_password,
        conn=conn,
    )
