# opaboard/adapters/settings_store.py

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

import pymysql

# Prefer per-user environment variables (ex: exports in ~/.bashrc):
#   export OPABOARD_DB_HOST="..."
#   export OPABOARD_DB_USER="..."
#   export OPABOARD_DB_PASS="..."
#   export OPABOARD_DB_NAME="opadashboard"
DB_ENV_VARS = ("OPABOARD_DB_HOST", "OPABOARD_DB_USER", "OPABOARD_DB_PASS", "OPABOARD_DB_NAME")


@dataclass(frozen=True)
class ApiSettings:
    api_url: str
    api_token: str


def db_params_from_env() -> Dict[str, str]:
    return {
        "host": os.environ.get("OPABOARD_DB_HOST", "").strip(),
        "user": os.environ.get("OPABOARD_DB_USER", "").strip(),
        "password": os.environ.get("OPABOARD_DB_PASS", "").strip(),
        "database": os.environ.get("OPABOARD_DB_NAME", "opadashboard").strip(),
    }


def missing_db_env() -> list:
    params = db_params_from_env()
    names = dict(zip(("host", "user", "password", "database"), DB_ENV_VARS))
    # An empty password is legal for local MySQL installs.
    return [names[k] for k in ("host", "user", "database") if not params[k]]


def load_api_settings() -> Optional[ApiSettings]:
    """
    Read the most recently saved upstream URL/token from the dashboard DB.

    Returns None when the DB is not configured, unreachable, or holds no
    settings row yet.
    """
    missing = missing_db_env()
    if missing:
        print("[INFO] Settings lookup skipped: missing env var(s): %s" % ", ".join(missing))
        return None

    params = db_params_from_env()
    conn = None
    cursor = None
    try:
        conn = pymysql.connect(
            host=params["host"],
            user=params["user"],
            password=params["password"],
            database=params["database"],
            charset="utf8mb4",
        )
        cursor = conn.cursor()
        cursor.execute("SELECT api_url, api_token FROM settings ORDER BY id DESC LIMIT 1")
        row = cursor.fetchone()
        if not row:
            return None

        api_url, api_token = row[0], row[1]
        if not api_url:
            return None
        return ApiSettings(api_url=str(api_url).strip(), api_token=str(api_token or "").strip())

    except pymysql.MySQLError as e:
        logging.exception("Database error occurred: %s", e)
        print(f"[WARN] Settings lookup failed: {e}")
        return None
    finally:
        if cursor is not None:
            cursor.close()
        if conn is not None:
            conn.close()
