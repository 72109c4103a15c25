"""
Ops Routes
==========

Public health endpoint and the admin error feed.
"""

import os
import shutil
from datetime import datetime, timezone

from flask import current_app, jsonify, request

from atelier.core import Database, LoggingService, get_config_value
from atelier.modules.auth import get_current_user, login_required
from . import ops_health_bp, ops_admin_bp

FEED_LEVELS = ('WARNING', 'ERROR', 'CRITICAL')


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------

def _get_disk_usage(path):
    """Disk usage for the partition holding path."""
    try:
        usage = shutil.disk_usage(path if os.path.exists(path) else '/')
        return {
            'free_gb': round(usage.free / (1024 ** 3), 1),
            'percent': round((usage.used / usage.total) * 100, 1),
        }
    except OSError as e:
        return {'free_gb': 0, 'percent': 0, 'error': str(e)}


def _build_health_response():
    """Build the health check response dict and overall status."""
    ext = current_app.extensions['atelier']
    checks = {
        'projects_db': ext.get_catalog_service(current_app).db.check(),
        'users_db': Database.check(get_config_value('USER_DB')),
        'storage': (get_config_value('STORAGE_TYPE', 'local') or 'local').lower(),
    }
    if checks['storage'] == 'local':
        checks['disk'] = _get_disk_usage(get_config_value('UPLOAD_FOLDER'))

    status = 'ok' if checks['projects_db'] and checks['users_db'] else 'critical'
    return {
        'status': status,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'checks': checks,
    }, status


# ---------------------------------------------------------------------------
# Public routes (ops_health_bp, no auth)
# ---------------------------------------------------------------------------

@ops_health_bp.route('', methods=['GET'])
def health_check():
    """Public health endpoint for uptime monitors."""
    data, status = _build_health_response()
    return jsonify(data), 503 if status == 'critical' else 200


# ---------------------------------------------------------------------------
# Admin routes (ops_admin_bp, session auth)
# ---------------------------------------------------------------------------

@ops_admin_bp.route('/errors', methods=['GET'])
@login_required
def recent_errors():
    """Recent warnings and errors. Admins see the whole feed, editors their own entries."""
    user = get_current_user()
    limit = min(request.args.get('limit', 50, type=int) or 50, 200)
    entries = LoggingService.get_recent_logs(
        limit=limit,
        source=request.args.get('source'),
        levels=FEED_LEVELS,
        user_id=None if user['role'] == 'admin' else user['id'],
    )
    return jsonify({'items': entries, 'count': len(entries)})
