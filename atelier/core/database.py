import os
import sqlite3


class Database:

    @staticmethod
    def connect(path):
        """Open a sqlite connection with dict-style rows, creating the parent dir if needed."""
        db_dir = os.path.dirname(path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        conn = sqlite3.connect(path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def check(path):
        """Return True if the database at path answers a trivial query."""
        try:
            conn = Database.connect(path)
            try:
                conn.execute('SELECT 1').fetchone()
            finally:
                conn.close()
            return True
        except sqlite3.Error as e:
            print(f"Database check failed for {path}: {e}")
            return False
