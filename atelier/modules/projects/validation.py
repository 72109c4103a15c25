"""
Project field coercion and validation.

`coerce_fields` turns raw request values (multipart strings or JSON values)
into typed record fields; `validate_fields` checks ranges and enums. Both
collect every issue instead of stopping at the first one.
"""

import json

from .models import (
    CATEGORIES, DESCRIPTION_MAX_LENGTH, FIELD_NAMES, MIN_YEAR,
    SHORT_DESCRIPTION_MAX_LENGTH, STATUSES, TITLE_MAX_LENGTH,
    max_year, split_technologies,
)

TRUE_VALUES = {'true', '1', 'on', 'yes'}
FALSE_VALUES = {'false', '0', 'off', 'no', ''}

API_NAMES = {key: name for name, key in FIELD_NAMES.items()}

REQUIRED_FIELDS = ('title', 'description', 'short_description', 'category', 'year')
TESTIMONIAL_FIELDS = ('name', 'role', 'quote')


def issue(key, message):
    return {'field': API_NAMES.get(key, key), 'message': message}


def parse_bool(value):
    """True/False for recognised values, None otherwise"""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    return None


def parse_int(value):
    """int for integers and integer strings, None otherwise"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def parse_testimonial(value):
    """dict, JSON string, '' or None -> dict or None. Raises ValueError on bad input."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value in ('', 'null'):
            return None
        value = json.loads(value)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError('Testimonial must be an object')
    testimonial = {}
    for key in TESTIMONIAL_FIELDS + ('image',):
        item = value.get(key)
        if item is not None:
            testimonial[key] = str(item).strip()
    return testimonial


def coerce_fields(raw):
    """Raw request mapping -> (fields keyed by record name, issues)"""
    fields = {}
    issues = []

    for name, key in FIELD_NAMES.items():
        if name not in raw:
            continue
        value = raw.get(name)

        if key in ('title', 'description', 'short_description', 'category', 'status'):
            if value is None:
                fields[key] = ''
            elif isinstance(value, str):
                fields[key] = value.strip()
            else:
                issues.append(issue(key, f'{API_NAMES[key]} must be a string'))

        elif key == 'client':
            if value is None or isinstance(value, str):
                fields[key] = (value or '').strip() or None
            else:
                issues.append(issue(key, 'Client must be a string'))

        elif key == 'technologies':
            if value is None or isinstance(value, (str, list)):
                fields[key] = split_technologies(value)
            else:
                issues.append(issue(key, 'Technologies must be a comma separated string or a list'))

        elif key == 'year':
            year = parse_int(value)
            if year is None:
                issues.append(issue(key, 'Year must be a number'))
            else:
                fields[key] = year

        elif key == 'featured':
            featured = parse_bool(value)
            if featured is None:
                issues.append(issue(key, 'Featured must be true or false'))
            else:
                fields[key] = featured

        elif key == 'testimonial':
            try:
                fields[key] = parse_testimonial(value)
            except ValueError:
                issues.append(issue(key, 'Testimonial must be an object with name, role and quote'))

    return fields, issues


def validate_fields(fields, partial=False):
    """Check typed fields against the record rules. Returns a list of issues.

    With partial=False every required field must be present; with partial=True
    only the fields given are checked.
    """
    issues = []

    if not partial:
        for key in REQUIRED_FIELDS:
            if key not in fields:
                issues.append(issue(key, f'{API_NAMES[key]} is required'))

    def check_text(key, max_length):
        if key not in fields:
            return
        value = fields[key]
        if not isinstance(value, str) or not value.strip():
            issues.append(issue(key, f'{API_NAMES[key]} is required'))
        elif len(value) > max_length:
            issues.append(issue(key, f'{API_NAMES[key]} must be at most {max_length} characters'))

    check_text('title', TITLE_MAX_LENGTH)
    check_text('description', DESCRIPTION_MAX_LENGTH)
    check_text('short_description', SHORT_DESCRIPTION_MAX_LENGTH)

    if 'category' in fields and fields['category'] not in CATEGORIES:
        issues.append(issue('category', f'Category must be one of: {", ".join(CATEGORIES)}'))

    if 'status' in fields and fields['status'] not in STATUSES:
        issues.append(issue('status', f'Status must be one of: {", ".join(STATUSES)}'))

    if 'year' in fields:
        year = fields['year']
        upper = max_year()
        if isinstance(year, bool) or not isinstance(year, int) or not MIN_YEAR <= year <= upper:
            issues.append(issue('year', f'Year must be between {MIN_YEAR} and {upper}'))

    if 'featured' in fields and not isinstance(fields['featured'], bool):
        issues.append(issue('featured', 'Featured must be true or false'))

    if 'technologies' in fields and not isinstance(fields['technologies'], list):
        issues.append(issue('technologies', 'Technologies must be a list'))

    testimonial = fields.get('testimonial')
    if testimonial is not None:
        if not isinstance(testimonial, dict):
            issues.append(issue('testimonial', 'Testimonial must be an object'))
        else:
            missing = [k for k in TESTIMONIAL_FIELDS if not str(testimonial.get(k) or '').strip()]
            if missing:
                issues.append(issue('testimonial', f'Testimonial requires: {", ".join(missing)}'))

    return issues
