"""
Projects API Routes
===================

Public portfolio endpoints plus owner-scoped admin CRUD with image uploads.
Accepts multipart forms (admin editor) or JSON bodies.
"""

import math

from flask import current_app, jsonify, request

from atelier.core import get_config_value
from atelier.core.exceptions import ValidationError
from atelier.modules.auth import UserDatabase, get_current_user_id, login_required
from . import projects_bp
from .models import serialize_project
from .validation import coerce_fields, parse_bool, validate_fields

UPLOAD_FIELDS = ('images', 'images[]')


def get_catalog_service():
    return current_app.extensions['atelier'].get_catalog_service(current_app)


# ===== Request parsing =====

def _form_list(name):
    """All values sent under `name` or `name[]`; None when the key was not sent at all."""
    keys = (name, f'{name}[]')
    if not any(key in request.form for key in keys):
        return None
    values = []
    for key in keys:
        values.extend(request.form.getlist(key))
    return [v.strip() for v in values if v and v.strip()]


def _json_list(data, name):
    value = data.get(name)
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError.for_field(name, f'{name} must be a list of image URLs')
    return [v.strip() for v in value if v.strip()]


def _read_request():
    """-> (raw field mapping, uploaded files, existing image urls, removed image urls)"""
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError.for_field('body', 'Request body must be a JSON object')
        return data, [], _json_list(data, 'existingImages'), _json_list(data, 'removedImages')

    files = []
    for key in UPLOAD_FIELDS:
        files.extend(request.files.getlist(key))
    return request.form, files, _form_list('existingImages'), _form_list('removedImages')


def _parse_fields(raw, partial):
    """Coerce and validate, reporting every issue at once"""
    fields, issues = coerce_fields(raw)
    seen = {i['field'] for i in issues}
    issues.extend(i for i in validate_fields(fields, partial=partial) if i['field'] not in seen)
    if issues:
        raise ValidationError(issues)
    return fields


# ===== Response shaping =====

def _envelope(items, total, page, limit):
    return {
        'items': items,
        'pagination': {
            'current': page,
            'pages': math.ceil(total / limit) if limit else 0,
            'total': total,
        },
    }


def _admin_view(record, owner=None):
    if owner is None:
        owner = UserDatabase.get_owner_summary(record['created_by'])
    return serialize_project(record, owner=owner)


# ===== Public routes =====

@projects_bp.route('', methods=['GET'])
def list_projects():
    """Published projects, newest first"""
    service = get_catalog_service()
    page, limit = service.clamp_page(
        request.args.get('page', 1),
        request.args.get('limit', service.default_page_size),
    )
    records, total = service.list_published(
        category=request.args.get('category'),
        featured=parse_bool(request.args.get('featured')) is True,
        page=page,
        limit=limit,
    )
    items = [serialize_project(r, include_owner=False) for r in records]
    return jsonify(_envelope(items, total, page, limit))


@projects_bp.route('/<slug>', methods=['GET'])
def get_project(slug):
    """Single published project by slug"""
    record = get_catalog_service().get_published_by_slug(slug)
    if get_config_value('EXPOSE_OWNER_ON_DETAIL', True):
        project = serialize_project(record, owner=UserDatabase.get_owner_summary(record['created_by']))
    else:
        project = serialize_project(record, include_owner=False)
    return jsonify({'project': project})


# ===== Admin routes =====

@projects_bp.route('/admin/all', methods=['GET'])
@login_required
def list_own_projects():
    """All of the caller's projects, drafts included"""
    uid = get_current_user_id()
    service = get_catalog_service()
    page, limit = service.clamp_page(
        request.args.get('page', 1),
        request.args.get('limit', service.default_page_size),
    )
    records, total = service.list_owned(
        uid,
        status=request.args.get('status') or None,
        category=request.args.get('category'),
        page=page,
        limit=limit,
    )
    owner = UserDatabase.get_owner_summary(uid)
    items = [_admin_view(r, owner) for r in records]
    return jsonify(_envelope(items, total, page, limit))


@projects_bp.route('/admin/images', methods=['GET'])
@login_required
def list_images():
    """The caller's stored images for the editor's image browser"""
    return jsonify({'items': get_catalog_service().list_owned_images(get_current_user_id())})


@projects_bp.route('/admin/<project_id>', methods=['GET'])
@login_required
def get_own_project(project_id):
    """Single project for edit prefill"""
    record = get_catalog_service().get_owned_by_id(get_current_user_id(), project_id)
    return jsonify(_admin_view(record))


@projects_bp.route('', methods=['POST'])
@login_required
def create_project():
    uid = get_current_user_id()
    raw, files, _, _ = _read_request()
    fields = _parse_fields(raw, partial=False)

    record = get_catalog_service().create(uid, fields, files)
    return jsonify({'message': 'Project created successfully', 'record': _admin_view(record)}), 201


@projects_bp.route('/<project_id>', methods=['PUT'])
@login_required
def update_project(project_id):
    uid = get_current_user_id()
    raw, files, existing, removed = _read_request()
    fields = _parse_fields(raw, partial=True)

    record = get_catalog_service().update(
        uid, project_id, fields, files,
        existing_image_urls=existing,
        removed_image_urls=removed,
    )
    return jsonify({'message': 'Project updated successfully', 'record': _admin_view(record)})


@projects_bp.route('/<project_id>', methods=['DELETE'])
@login_required
def delete_project(project_id):
    get_catalog_service().delete(get_current_user_id(), project_id)
    return jsonify({'message': 'Project deleted successfully'})
