"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_ATTENDANCE_YEAR = 2026
DEFAULT_ADMIN_PASSWORD = "1004"
DEFAULT_ADMIN_SESSION_HOURS = 24

DEFAULT_PAGE_SIZE = 50
DEFAULT_LEADERBOARD_LIMIT = 10
RECENT_HISTORY_LIMIT = 20
COMPARISON_DATE_LIMIT = 20
TOP_STUDENTS_LIMIT = 10
EXCEL_PREVIEW_ROWS = 5

# Points granted for one "present" record.
ATTENDANCE_REWARD = 1
