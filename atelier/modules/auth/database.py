import sqlite3
from datetime import datetime, timezone
from werkzeug.security import generate_password_hash, check_password_hash
from atelier.core import Database, get_config_value


class UserDatabase:

    @staticmethod
    def _get_connection():
        """Get database connection, creating the users table on first use"""
        conn = Database.connect(get_config_value('USER_DB', 'users.db'))
        conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT UNIQUE NOT NULL,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'editor',
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                last_login TEXT
            )
        """)
        return conn

    @staticmethod
    def _public(row):
        """User row without the password hash"""
        if not row:
            return None
        user = dict(row)
        user.pop('password_hash', None)
        user.pop('is_active', None)
        return user

    @staticmethod
    def get_user_by_email(email):
        conn = UserDatabase._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ? AND is_active = 1", (email,)
            ).fetchone()
            return UserDatabase._public(row)
        finally:
            conn.close()

    @staticmethod
    def get_user_by_id(user_id):
        conn = UserDatabase._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE id = ? AND is_active = 1", (user_id,)
            ).fetchone()
            return UserDatabase._public(row)
        finally:
            conn.close()

    @staticmethod
    def get_owner_summary(user_id):
        """{id, username, email} for embedding in project responses"""
        user = UserDatabase.get_user_by_id(user_id)
        if not user:
            return None
        return {'id': user['id'], 'username': user['username'], 'email': user['email']}

    @staticmethod
    def count_users():
        conn = UserDatabase._get_connection()
        try:
            return conn.execute('SELECT COUNT(*) FROM users').fetchone()[0]
        finally:
            conn.close()

    @staticmethod
    def create_user(username, email, password, role='editor'):
        """Create a new user. Returns the new id, or None if username/email is taken."""
        conn = UserDatabase._get_connection()
        try:
            cursor = conn.execute("""
                INSERT INTO users (username, email, password_hash, role, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (username, email, generate_password_hash(password), role,
                  datetime.now(timezone.utc).isoformat()))
            conn.commit()
            return cursor.lastrowid
        except sqlite3.IntegrityError:
            return None  # User already exists
        finally:
            conn.close()

    @staticmethod
    def verify_user_credentials(email, password):
        """Return the user dict for valid credentials, else None"""
        conn = UserDatabase._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ? AND is_active = 1", (email,)
            ).fetchone()

            if row and check_password_hash(row['password_hash'], password):
                conn.execute(
                    "UPDATE users SET last_login = ? WHERE id = ?",
                    (datetime.now(timezone.utc).isoformat(), row['id'])
                )
                conn.commit()
                return UserDatabase._public(row)
            return None
        finally:
            conn.close()
