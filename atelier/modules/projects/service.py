"""
Catalog Service
===============

Create / read / update / delete for portfolio projects, including image-set
reconciliation and owner scoping. Written against the ImageStore interface
only, so it behaves the same with local and cloud storage.

Ordering rules:
- every upload is vetted before any blob is written
- new blobs are written before the record that references them is saved
- blobs dropped from a record are released only after the record is saved
  (or deleted), and a failed release never fails the operation
"""

import logging
import sqlite3
import uuid

from atelier.core import LoggingService
from atelier.core.exceptions import NotFoundOrForbidden, ValidationError
from .database import utcnow_iso
from .models import FIELD_NAMES, featured_image_for, image_alt, image_ref, slugify
from .validation import issue, validate_fields

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = frozenset(FIELD_NAMES.values())
DUPLICATE_TITLE = 'A project with this title already exists'
EMPTY_SLUG = 'Title must contain at least one letter or number'


class CatalogService:

    def __init__(self, projects_db, image_store, max_files=10,
                 default_page_size=20, max_page_size=100):
        self.db = projects_db
        self.store = image_store
        self.max_files = max_files
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # ===== Helpers =====

    def clamp_page(self, page, limit):
        """1-based page and limit clamped to positive integers"""
        try:
            page = int(page)
        except (TypeError, ValueError):
            page = 1
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            limit = self.default_page_size
        page = max(page, 1)
        limit = min(max(limit, 1), self.max_page_size)
        return page, limit

    def _paginate(self, filters, page, limit):
        page, limit = self.clamp_page(page, limit)
        records = self.db.list(filters, limit, (page - 1) * limit)
        return records, self.db.count(filters)

    def _load_owned(self, uid, project_id):
        record = self.db.get(project_id)
        if record is None:
            raise NotFoundOrForbidden(reason='missing')
        if str(record['created_by']) != str(uid):
            LoggingService.log_security_event(
                'Project access by non-owner',
                {'project_id': project_id, 'owner': record['created_by']},
                user_id=uid,
            )
            raise NotFoundOrForbidden(reason='not_owner')
        return record

    def _prepare_uploads(self, files):
        """Read and vet every upload. Nothing is written here."""
        uploads = []
        for f in files or ():
            if not getattr(f, 'filename', None):
                continue  # empty file input
            uploads.append((f.filename, getattr(f, 'content_type', None), f.read()))

        if len(uploads) > self.max_files:
            raise ValidationError.for_field('images', f'At most {self.max_files} images can be uploaded at once')

        for filename, content_type, data in uploads:
            self.store.check(data, filename, content_type)
        return uploads

    def _store_uploads(self, uploads, title, uid):
        """Write vetted uploads in order. On failure, blobs from this call are released."""
        images = []
        try:
            for filename, content_type, data in uploads:
                url = self.store.put(data, filename, content_type, owner_id=uid)
                images.append(image_ref(url, title))
        except Exception:
            self.release_images([img['url'] for img in images])
            raise
        return images

    def release_images(self, urls):
        """Best-effort blob removal. Returns the urls whose removal raised."""
        failed = []
        for url in urls:
            try:
                if not self.store.delete(url):
                    logger.info(f"Image already gone: {url}")
            except Exception as e:
                failed.append(url)
                LoggingService.error('projects', f'Failed to delete image {url}', {'error': str(e)})
        return failed

    def _check_slug(self, slug, issues, exclude_id=None):
        if not slug:
            issues.append(issue('title', EMPTY_SLUG))
        elif self.db.slug_taken(slug, exclude_id=exclude_id):
            issues.append(issue('title', DUPLICATE_TITLE))

    # ===== Public reads =====

    def list_published(self, category=None, featured=None, page=1, limit=None):
        filters = {'status': 'published'}
        if category and category != 'All':
            filters['category'] = category
        if featured is True:
            filters['featured'] = True
        return self._paginate(filters, page, limit)

    def get_published_by_slug(self, slug):
        record = self.db.get_by_slug(slug, status='published')
        if record is None:
            raise NotFoundOrForbidden('Project not found')
        return record

    # ===== Owner operations =====

    def list_owned(self, uid, status=None, category=None, page=1, limit=None):
        filters = {'created_by': uid}
        if status:
            filters['status'] = status
        if category and category != 'All':
            filters['category'] = category
        return self._paginate(filters, page, limit)

    def get_owned_by_id(self, uid, project_id):
        return self._load_owned(uid, project_id)

    def list_owned_images(self, uid):
        """Stored images referenced by the caller's records, newest first"""
        owned = self.db.image_urls_for_owner(uid)
        if not owned:
            return []
        return [img for img in self.store.list() if img['url'] in owned]

    def create(self, uid, fields, files=None):
        fields = {k: v for k, v in fields.items() if k in MUTABLE_FIELDS}
        issues = validate_fields(fields, partial=False)

        slug = slugify(fields.get('title'))
        if not any(i['field'] == 'title' for i in issues):
            self._check_slug(slug, issues)
        if issues:
            raise ValidationError(issues)

        uploads = self._prepare_uploads(files)
        images = self._store_uploads(uploads, fields['title'], uid)

        now = utcnow_iso()
        record = {
            'id': uuid.uuid4().hex,
            'title': fields['title'],
            'slug': slug,
            'description': fields['description'],
            'short_description': fields['short_description'],
            'category': fields['category'],
            'technologies': fields.get('technologies', []),
            'images': images,
            'featured_image': featured_image_for(images),
            'client': fields.get('client'),
            'year': fields['year'],
            'status': fields.get('status') or 'draft',
            'featured': fields.get('featured', False),
            'testimonial': fields.get('testimonial'),
            'created_by': uid,
            'created_at': now,
            'updated_at': now,
        }

        try:
            self.db.insert(record)
        except sqlite3.IntegrityError:
            # Lost a race for the slug
            self.release_images([img['url'] for img in images])
            raise ValidationError.for_field('title', DUPLICATE_TITLE)
        except Exception:
            self.release_images([img['url'] for img in images])
            raise

        LoggingService.log_user_action(
            'projects', 'create project', uid, {'id': record['id'], 'slug': slug, 'images': len(images)}
        )
        return record

    def update(self, uid, project_id, fields, files=None,
               existing_image_urls=None, removed_image_urls=None):
        """Apply a partial update.

        Every field present replaces the stored value. Final images are the
        current images listed in existing_image_urls (all of them when it is
        None) minus removed_image_urls, followed by the new uploads.
        """
        record = self._load_owned(uid, project_id)

        fields = {k: v for k, v in fields.items() if k in MUTABLE_FIELDS}
        issues = validate_fields(fields, partial=True)

        updated = dict(record)
        updated.update(fields)

        if 'title' in fields and not any(i['field'] == 'title' for i in issues):
            updated['slug'] = slugify(updated['title'])
            if updated['slug'] != record['slug']:
                self._check_slug(updated['slug'], issues, exclude_id=project_id)
        if issues:
            raise ValidationError(issues)

        uploads = self._prepare_uploads(files)

        if existing_image_urls is None:
            keep = {img['url'] for img in record['images']}
        else:
            keep = set(existing_image_urls)
        removed = set(removed_image_urls or ())
        kept = [img for img in record['images'] if img['url'] in keep and img['url'] not in removed]
        if updated['title'] != record['title']:
            # Generated alt text follows the title; custom alt text is left alone
            old_alt = image_alt(record['title'])
            kept = [dict(img, alt=image_alt(updated['title'])) if img.get('alt') == old_alt else img
                    for img in kept]

        new_images = self._store_uploads(uploads, updated['title'], uid)
        updated['images'] = kept + new_images
        updated['featured_image'] = featured_image_for(updated['images'])
        updated['updated_at'] = utcnow_iso()

        new_urls = [img['url'] for img in new_images]
        try:
            saved = self.db.update(updated)
        except sqlite3.IntegrityError:
            self.release_images(new_urls)
            raise ValidationError.for_field('title', DUPLICATE_TITLE)
        except Exception:
            self.release_images(new_urls)
            raise
        if not saved:
            # Deleted by a concurrent request
            self.release_images(new_urls)
            raise NotFoundOrForbidden(reason='missing')

        final_urls = {img['url'] for img in updated['images']}
        dropped = [img['url'] for img in record['images'] if img['url'] not in final_urls]
        self.release_images(dropped)

        LoggingService.log_user_action('projects', 'update project', uid, {
            'id': project_id,
            'fields': sorted(fields),
            'added_images': len(new_images),
            'dropped_images': len(dropped),
        })
        return updated

    def delete(self, uid, project_id):
        """Remove the record, then release every blob it referenced."""
        record = self._load_owned(uid, project_id)

        if not self.db.delete(project_id):
            raise NotFoundOrForbidden(reason='missing')

        failed = self.release_images([img['url'] for img in record['images']])
        if failed:
            logger.warning(f"Project {project_id} deleted with {len(failed)} image(s) left in storage")

        LoggingService.log_user_action('projects', 'delete project', uid, {
            'id': project_id, 'images': len(record['images']), 'failed_image_deletes': failed,
        })
        return record
