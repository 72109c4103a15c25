"""
Projects Database
=================

sqlite persistence for project records. JSON text columns hold the list and
nested fields; `slug` carries a unique index.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone

from atelier.core import Database, get_config_value
from .models import row_to_record

logger = logging.getLogger(__name__)

_COLUMNS = ('id', 'title', 'slug', 'description', 'short_description', 'category',
            'technologies', 'images', 'featured_image', 'client', 'year', 'status',
            'featured', 'testimonial', 'created_by', 'created_at', 'updated_at')


def utcnow_iso():
    return datetime.now(timezone.utc).isoformat()


def _record_params(record):
    return (
        record['id'], record['title'], record['slug'], record['description'],
        record['short_description'], record['category'],
        json.dumps(record['technologies']), json.dumps(record['images']),
        record['featured_image'], record['client'], record['year'], record['status'],
        1 if record['featured'] else 0,
        json.dumps(record['testimonial']) if record['testimonial'] else None,
        record['created_by'], record['created_at'], record['updated_at'],
    )


def _where(filters):
    """Build a WHERE clause from equality filters, skipping None values"""
    conditions = []
    params = []
    for column in ('status', 'category', 'featured', 'created_by'):
        value = filters.get(column)
        if value is None:
            continue
        conditions.append(f'{column} = ?')
        params.append(int(value) if isinstance(value, bool) else value)
    where = f' WHERE {" AND ".join(conditions)}' if conditions else ''
    return where, params


class ProjectDatabase:
    """Project table access. `path` defaults to the PROJECTS_DB setting."""

    def __init__(self, path=None):
        self.path = path or get_config_value('PROJECTS_DB', 'projects.db')
        self._initialized = False

    def connect(self):
        conn = Database.connect(self.path)
        if not self._initialized:
            self.init_db(conn)
            self._initialized = True
        return conn

    @staticmethod
    def init_db(conn):
        """Create the projects table and its indexes"""
        cursor = conn.cursor()
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS projects (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                slug TEXT NOT NULL,
                description TEXT NOT NULL,
                short_description TEXT NOT NULL,
                category TEXT NOT NULL,
                technologies TEXT NOT NULL DEFAULT '[]',
                images TEXT NOT NULL DEFAULT '[]',
                featured_image TEXT NOT NULL DEFAULT '',
                client TEXT,
                year INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'draft',
                featured INTEGER NOT NULL DEFAULT 0,
                testimonial TEXT,
                created_by INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')
        cursor.execute('CREATE UNIQUE INDEX IF NOT EXISTS idx_projects_slug ON projects(slug)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_projects_category ON projects(category)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_projects_status ON projects(status)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_projects_featured ON projects(featured)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_projects_created_by ON projects(created_by)')
        conn.commit()

    def insert(self, record):
        """Insert a new record. Raises sqlite3.IntegrityError on a duplicate slug."""
        conn = self.connect()
        try:
            placeholders = ', '.join('?' for _ in _COLUMNS)
            conn.execute(
                f'INSERT INTO projects ({", ".join(_COLUMNS)}) VALUES ({placeholders})',
                _record_params(record)
            )
            conn.commit()
        finally:
            conn.close()
        return record

    def update(self, record):
        """Overwrite every mutable column of an existing record (last write wins)"""
        conn = self.connect()
        try:
            params = _record_params(record)
            assignments = ', '.join(f'{col} = ?' for col in _COLUMNS[1:])
            cursor = conn.execute(
                f'UPDATE projects SET {assignments} WHERE id = ?',
                params[1:] + (record['id'],)
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def delete(self, project_id):
        conn = self.connect()
        try:
            cursor = conn.execute('DELETE FROM projects WHERE id = ?', (project_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def get(self, project_id):
        conn = self.connect()
        try:
            row = conn.execute('SELECT * FROM projects WHERE id = ?', (project_id,)).fetchone()
            return row_to_record(row) if row else None
        finally:
            conn.close()

    def get_by_slug(self, slug, status=None):
        conn = self.connect()
        try:
            if status:
                row = conn.execute(
                    'SELECT * FROM projects WHERE slug = ? AND status = ?', (slug, status)
                ).fetchone()
            else:
                row = conn.execute('SELECT * FROM projects WHERE slug = ?', (slug,)).fetchone()
            return row_to_record(row) if row else None
        finally:
            conn.close()

    def slug_taken(self, slug, exclude_id=None):
        conn = self.connect()
        try:
            row = conn.execute(
                'SELECT id FROM projects WHERE slug = ? AND id != ?', (slug, exclude_id or '')
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def list(self, filters, limit, offset):
        """Records matching filters, newest first"""
        where, params = _where(filters)
        conn = self.connect()
        try:
            rows = conn.execute(
                f'SELECT * FROM projects{where} ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?',
                params + [limit, offset]
            ).fetchall()
            return [row_to_record(row) for row in rows]
        finally:
            conn.close()

    def count(self, filters):
        where, params = _where(filters)
        conn = self.connect()
        try:
            return conn.execute(f'SELECT COUNT(*) FROM projects{where}', params).fetchone()[0]
        finally:
            conn.close()

    def image_urls_for_owner(self, created_by):
        """Every image url referenced by the owner's records, drafts included"""
        conn = self.connect()
        try:
            rows = conn.execute(
                'SELECT images FROM projects WHERE created_by = ?', (created_by,)
            ).fetchall()
        finally:
            conn.close()
        return {img['url'] for row in rows for img in json.loads(row['images'] or '[]')}

    def check(self):
        try:
            conn = self.connect()
            conn.close()
            return True
        except sqlite3.Error as e:
            logger.error(f"Projects database unavailable: {e}")
            return False
