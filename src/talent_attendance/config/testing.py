import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "talent_attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

ATTENDANCE_YEAR = 2026

ADMIN_DEFAULT_PASSWORD = "1004"
ADMIN_SESSION_HOURS = 24

AUTO_INIT_DB = False
AUTO_SEED_DB = False
