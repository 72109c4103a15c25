"""
Persistent application log for Atelier.
Entries go to the console logger and to the app_logs table in LOGS_DB.
"""

import json
import logging
import sqlite3
import traceback
from datetime import datetime, timedelta, timezone
from flask import request, has_request_context
from .config import get_config_value
from .database import Database

console = logging.getLogger('atelier')


class LoggingService:
    """Structured log entries with request context, stored in sqlite"""

    @staticmethod
    def _db_path():
        return get_config_value('LOGS_DB')

    @staticmethod
    def _ensure_logs_table(conn):
        """Create app_logs and its indexes on first use"""
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS app_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                level TEXT NOT NULL,
                source TEXT NOT NULL,
                message TEXT NOT NULL,
                details TEXT,
                ip_address TEXT,
                user_agent TEXT,
                request_path TEXT,
                user_id TEXT
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_logs_timestamp
            ON app_logs(timestamp DESC)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_logs_source
            ON app_logs(source)
        """)

    @staticmethod
    def _get_request_context():
        """(ip, user agent, path) of the current request, or Nones outside one"""
        if not has_request_context():
            return None, None, None

        ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
        if ip_address and ',' in ip_address:
            ip_address = ip_address.split(',')[0].strip()

        return ip_address, request.headers.get('User-Agent', ''), request.path

    @staticmethod
    def log(level, source, message, details=None, user_id=None):
        """
        Log a message to the console logger and the app_logs table

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (projects, auth, storage, etc.)
            message (str): Main log message
            details (str/dict): Additional details (will be JSON-encoded if dict)
            user_id: Optional user identifier
        """
        level = level.upper()
        console.log(getattr(logging, level, logging.INFO), f"[{source}] {message}")

        if isinstance(details, (dict, list)):
            details = json.dumps(details, indent=2, default=str)

        db_path = LoggingService._db_path()
        if not db_path:
            return

        ip_address, user_agent, request_path = LoggingService._get_request_context()

        try:
            conn = Database.connect(db_path)
            try:
                LoggingService._ensure_logs_table(conn)
                conn.execute("""
                    INSERT INTO app_logs
                    (timestamp, level, source, message, details, ip_address, user_agent, request_path, user_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    datetime.now(timezone.utc).isoformat(), level, source, message, details,
                    ip_address, user_agent, request_path,
                    str(user_id) if user_id is not None else None
                ))
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            # Fall back to the console when the log database is unavailable
            console.warning(f"Logging service error: {e}")
            if details:
                console.warning(f"Details: {details}")

    @staticmethod
    def debug(source, message, details=None, user_id=None):
        LoggingService.log('DEBUG', source, message, details, user_id)

    @staticmethod
    def info(source, message, details=None, user_id=None):
        LoggingService.log('INFO', source, message, details, user_id)

    @staticmethod
    def warning(source, message, details=None, user_id=None):
        LoggingService.log('WARNING', source, message, details, user_id)

    @staticmethod
    def error(source, message, details=None, user_id=None):
        LoggingService.log('ERROR', source, message, details, user_id)

    @staticmethod
    def log_user_action(source, action, user_id=None, details=None):
        """Log user actions (login, register, project create/delete, ...)"""
        LoggingService.info(source, f"User action: {action}", details, user_id)

    @staticmethod
    def log_error_with_traceback(source, error, details=None):
        """ERROR entry carrying the exception type, message and formatted traceback"""
        error_details = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'traceback': ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
        }
        if details:
            error_details['additional_details'] = details

        LoggingService.error(source, f"Exception occurred: {type(error).__name__}", error_details)

    @staticmethod
    def log_security_event(message, details=None, user_id=None):
        """Ownership violations, rejected origins, failed logins"""
        LoggingService.warning('security', message, details, user_id)

    @staticmethod
    def get_recent_logs(limit=50, source=None, levels=None, user_id=None):
        """Return the newest log entries as dicts.

        Optionally restricted to one source, a set of levels and/or one user.
        """
        conditions = []
        params = []
        if source:
            conditions.append('source = ?')
            params.append(source)
        if levels:
            conditions.append(f'level IN ({", ".join("?" for _ in levels)})')
            params.extend(level.upper() for level in levels)
        if user_id is not None:
            conditions.append('user_id = ?')
            params.append(str(user_id))
        where = f' WHERE {" AND ".join(conditions)}' if conditions else ''

        conn = Database.connect(LoggingService._db_path())
        try:
            LoggingService._ensure_logs_table(conn)
            rows = conn.execute(
                f'SELECT * FROM app_logs{where} ORDER BY id DESC LIMIT ?', params + [limit]
            ).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    @staticmethod
    def cleanup_old_logs(days_to_keep=30):
        """Delete entries older than days_to_keep. Returns the number removed."""
        cutoff_iso = (datetime.now(timezone.utc) - timedelta(days=days_to_keep)).isoformat()

        conn = Database.connect(LoggingService._db_path())
        try:
            LoggingService._ensure_logs_table(conn)
            cursor = conn.execute('DELETE FROM app_logs WHERE timestamp < ?', (cutoff_iso,))
            deleted_count = cursor.rowcount
            conn.commit()
        finally:
            conn.close()

        LoggingService.info('system', f"Cleaned up {deleted_count} old log entries")
        return deleted_count


def db_log(level, source, message, details=None, user_id=None):
    """Shorthand used by modules to write to the persistent log."""
    LoggingService.log(level, source, message, details, user_id)

