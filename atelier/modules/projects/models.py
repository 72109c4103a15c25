"""
Project Record
==============

Field rules and (de)serialization for portfolio project records.

Records move through the code as plain dicts with snake_case keys; the JSON
API exposes camelCase keys via `serialize_project`.
"""

import json
import re
from datetime import date

CATEGORIES = ('Branding', 'Digital', 'Print', 'Art Direction', 'Web Design')
STATUSES = ('draft', 'published')

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
SHORT_DESCRIPTION_MAX_LENGTH = 200
MIN_YEAR = 2000

# camelCase API name -> record key
FIELD_NAMES = {
    'title': 'title',
    'description': 'description',
    'shortDescription': 'short_description',
    'category': 'category',
    'technologies': 'technologies',
    'client': 'client',
    'year': 'year',
    'status': 'status',
    'featured': 'featured',
    'testimonial': 'testimonial',
}

_NON_SLUG_CHARS = re.compile(r'[^a-z0-9]+')


def max_year():
    return date.today().year + 1


def slugify(title):
    """Lowercase, collapse every run of non [a-z0-9] characters to '-', trim hyphens."""
    return _NON_SLUG_CHARS.sub('-', (title or '').lower()).strip('-')


def split_technologies(value):
    """Comma separated string (or list) -> list of trimmed, non-empty tags"""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [str(tag).strip() for tag in value if str(tag).strip()]


def image_alt(title):
    return f"{title} - Project Image"


def image_ref(url, title, caption=''):
    return {'url': url, 'alt': image_alt(title), 'caption': caption}


def featured_image_for(images):
    return images[0]['url'] if images else ''


def row_to_record(row):
    """Convert a projects table row to a record dict"""
    return {
        'id': row['id'],
        'title': row['title'],
        'slug': row['slug'],
        'description': row['description'],
        'short_description': row['short_description'],
        'category': row['category'],
        'technologies': json.loads(row['technologies'] or '[]'),
        'images': json.loads(row['images'] or '[]'),
        'featured_image': row['featured_image'] or '',
        'client': row['client'],
        'year': row['year'],
        'status': row['status'],
        'featured': bool(row['featured']),
        'testimonial': json.loads(row['testimonial']) if row['testimonial'] else None,
        'created_by': row['created_by'],
        'created_at': row['created_at'],
        'updated_at': row['updated_at'],
    }


def serialize_project(record, owner=None, include_owner=True):
    """Record dict -> API shape.

    include_owner=False drops createdBy entirely (public listings). Otherwise
    createdBy is the owner summary when given, else the bare owner id.
    """
    data = {
        'id': record['id'],
        'title': record['title'],
        'slug': record['slug'],
        'description': record['description'],
        'shortDescription': record['short_description'],
        'category': record['category'],
        'technologies': list(record['technologies']),
        'images': [dict(img) for img in record['images']],
        'featuredImage': record['featured_image'],
        'client': record['client'],
        'year': record['year'],
        'status': record['status'],
        'featured': record['featured'],
        'testimonial': dict(record['testimonial']) if record['testimonial'] else None,
        'createdAt': record['created_at'],
        'updatedAt': record['updated_at'],
    }
    if include_owner:
        data['createdBy'] = owner if owner is not None else record['created_by']
    return data
