"""
Projects Module
===============

Portfolio project catalog.

Provides:
- Public listing and detail of published projects
- Owner-scoped create, edit and delete
- Image uploads with add/remove across edits
- Category, technologies and testimonial fields
"""

from flask import Blueprint

projects_bp = Blueprint('projects', __name__, url_prefix='/api/projects')

from . import routes
from .database import ProjectDatabase
from .service import CatalogService

__all__ = ['projects_bp', 'ProjectDatabase', 'CatalogService']
