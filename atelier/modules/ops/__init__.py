"""
Ops Module
==========

Health monitoring for the site.

Features:
- Public /api/health endpoint for uptime monitors (no auth)
- Admin error feed from app_logs (session auth)
"""

from flask import Blueprint

# Public health endpoint (no auth, for uptime monitors)
ops_health_bp = Blueprint('ops_health', __name__, url_prefix='/api/health')

# Admin ops API (session auth)
ops_admin_bp = Blueprint('ops_admin', __name__, url_prefix='/api/ops')

from . import routes

__all__ = ['ops_health_bp', 'ops_admin_bp']
