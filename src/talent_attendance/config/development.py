import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "talent_attendance"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Attendance may only be recorded on the Sundays of this year.
ATTENDANCE_YEAR = int(os.getenv("ATTENDANCE_YEAR", "2026"))

# Used once, when the first admin login finds no stored password.
ADMIN_DEFAULT_PASSWORD = os.getenv("ADMIN_DEFAULT_PASSWORD", "1004")
ADMIN_SESSION_HOURS = int(os.getenv("ADMIN_SESSION_HOURS", "24"))

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed default departments on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
