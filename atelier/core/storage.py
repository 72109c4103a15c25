"""
Storage Utility
===============

Image blob storage with two interchangeable backends:

- LocalImageStore: files under a public folder, served at UPLOAD_URL_PREFIX.
- SpacesImageStore: DigitalOcean Spaces (S3 API via boto3), images bounded
  with Pillow on the way in.

Callers only use the ImageStore interface: check / put / delete / list.
"""

import io
import os
import uuid
import logging
from urllib.parse import urlparse

from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from .config import get_config_value
from .exceptions import PayloadTooLarge, StorageError, UnsupportedMediaType

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'jpg', 'jpeg', 'png', 'webp'}
ALLOWED_CONTENT_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/webp'}
CONTENT_TYPES = {
    'jpg': 'image/jpeg', 'jpeg': 'image/jpeg',
    'png': 'image/png', 'webp': 'image/webp',
}
PIL_FORMATS = {'jpg': 'JPEG', 'jpeg': 'JPEG', 'png': 'PNG', 'webp': 'WEBP'}


def file_extension(filename):
    """Lowercased extension without the dot, or '' when there is none."""
    if not filename or '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[-1].lower()


class ImageStore:
    """Interface shared by the storage backends."""

    max_bytes = None

    def check(self, file_bytes, filename, content_type=None):
        """Vet an upload without writing it. Returns the normalized extension."""
        ext = file_extension(filename)
        if ext not in ALLOWED_EXTENSIONS:
            raise UnsupportedMediaType()
        if content_type and content_type.split(';')[0].strip().lower() not in ALLOWED_CONTENT_TYPES:
            raise UnsupportedMediaType()
        if self.max_bytes is not None and len(file_bytes) > self.max_bytes:
            raise PayloadTooLarge(
                f"File too large. Max size: {self.max_bytes // (1024 * 1024)} MB"
            )
        return ext

    def put(self, file_bytes, filename, content_type=None, owner_id=None):
        raise NotImplementedError

    def delete(self, url):
        raise NotImplementedError

    def list(self):
        raise NotImplementedError

    @staticmethod
    def generate_name(ext):
        return f"{uuid.uuid4().hex}.{ext}"


class LocalImageStore(ImageStore):
    """Saves images to a folder on disk exposed under url_prefix."""

    def __init__(self, upload_dir, url_prefix='/uploads/projects', max_bytes=5 * 1024 * 1024):
        self.upload_dir = upload_dir
        self.url_prefix = url_prefix.rstrip('/')
        self.max_bytes = max_bytes

    def path_for(self, url):
        """Map a public URL back to its file path, or None if it is not ours."""
        if not url or not url.startswith(self.url_prefix + '/'):
            return None
        filename = url[len(self.url_prefix) + 1:]
        if not filename or filename != secure_filename(filename):
            return None
        return os.path.join(self.upload_dir, filename)

    def put(self, file_bytes, filename, content_type=None, owner_id=None):
        ext = self.check(file_bytes, filename, content_type)
        name = self.generate_name(ext)
        try:
            os.makedirs(self.upload_dir, exist_ok=True)
            with open(os.path.join(self.upload_dir, name), 'wb') as f:
                f.write(file_bytes)
        except OSError as e:
            logger.error(f"Error saving image {name}: {e}")
            raise StorageError() from e

        logger.info(f"Uploaded image: {name} (owner {owner_id})")
        return f"{self.url_prefix}/{name}"

    def delete(self, url):
        path = self.path_for(url)
        if not path or not os.path.isfile(path):
            return False
        try:
            os.unlink(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete image {url}") from e
        return True

    def list(self):
        if not os.path.isdir(self.upload_dir):
            return []

        images = []
        for filename in os.listdir(self.upload_dir):
            if file_extension(filename) in ALLOWED_EXTENSIONS:
                images.append({
                    'url': f"{self.url_prefix}/{filename}",
                    'filename': filename,
                })

        # Sort by modification time, newest first
        images.sort(
            key=lambda img: os.path.getmtime(os.path.join(self.upload_dir, img['filename'])),
            reverse=True,
        )
        return images


class SpacesImageStore(ImageStore):
    """Uploads to a DigitalOcean Space, bounding every image to max_dimension."""

    def __init__(self, region, space_name, access_key=None, secret_key=None,
                 folder='uploads', endpoint_url=None, public_url=None,
                 max_dimension=1200, max_bytes=None, client=None):
        self.region = region
        self.space_name = space_name
        self.access_key = access_key
        self.secret_key = secret_key
        self.folder = folder.strip('/')
        self.endpoint_url = endpoint_url or f"https://{region}.digitaloceanspaces.com"
        self.public_url = (public_url or f"https://{space_name}.{region}.digitaloceanspaces.com").rstrip('/')
        self.max_dimension = max_dimension
        self.max_bytes = max_bytes
        self._client = client

    @property
    def client(self):
        if self._client is None:
            import boto3
            self._client = boto3.client(
                's3',
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
            )
        return self._client

    def key_for(self, url):
        """Object key behind a public URL, or None if the URL is not in this Space."""
        if not url or not url.startswith(self.public_url + '/'):
            return None
        return urlparse(url).path.lstrip('/') or None

    def fit(self, file_bytes, ext):
        """Shrink the image to fit inside max_dimension x max_dimension."""
        try:
            img = Image.open(io.BytesIO(file_bytes))
            img.load()
        except Image.DecompressionBombError as e:
            raise PayloadTooLarge('Image dimensions too large') from e
        except (UnidentifiedImageError, OSError) as e:
            raise UnsupportedMediaType('Invalid image file') from e

        if not self.max_dimension or max(img.size) <= self.max_dimension:
            return file_bytes

        img.thumbnail((self.max_dimension, self.max_dimension))
        fmt = PIL_FORMATS[ext]
        if fmt == 'JPEG' and img.mode in ('RGBA', 'P', 'LA'):
            img = img.convert('RGB')

        buf = io.BytesIO()
        img.save(buf, format=fmt, quality=85)
        return buf.getvalue()

    def put(self, file_bytes, filename, content_type=None, owner_id=None):
        ext = self.check(file_bytes, filename, content_type)
        body = self.fit(file_bytes, ext)

        owner_folder = str(owner_id) if owner_id is not None else 'shared'
        object_key = f"{self.folder}/projects/{owner_folder}/{self.generate_name(ext)}"

        try:
            self.client.put_object(
                Bucket=self.space_name,
                Key=object_key,
                Body=body,
                ACL='public-read',
                ContentType=CONTENT_TYPES[ext],
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error uploading {object_key} to Spaces: {e}")
            raise StorageError() from e

        logger.info(f"Uploaded image to Spaces: {object_key}")
        return f"{self.public_url}/{object_key}"

    def delete(self, url):
        object_key = self.key_for(url)
        if not object_key:
            return False

        try:
            self.client.head_object(Bucket=self.space_name, Key=object_key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('404', 'NoSuchKey', 'NotFound'):
                return False
            raise StorageError(f"Failed to delete image {url}") from e

        try:
            self.client.delete_object(Bucket=self.space_name, Key=object_key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to delete image {url}") from e
        return True

    def list(self):
        prefix = f"{self.folder}/projects/"

        images = []
        paginator = self.client.get_paginator('list_objects_v2')
        for page in paginator.paginate(Bucket=self.space_name, Prefix=prefix):
            for obj in page.get('Contents', []):
                key = obj['Key']
                filename = key.rsplit('/', 1)[-1]
                if file_extension(filename) in ALLOWED_EXTENSIONS:
                    images.append({
                        'url': f"{self.public_url}/{key}",
                        'filename': filename,
                        'last_modified': obj.get('LastModified'),
                    })

        # Sort newest first, then strip the internal field
        images.sort(key=lambda x: x.get('last_modified') or '', reverse=True)
        for img in images:
            img.pop('last_modified', None)
        return images


def create_image_store():
    """Build the backend selected by STORAGE_TYPE ('local' or 'cloud')."""
    storage_type = (get_config_value('STORAGE_TYPE', 'local') or 'local').lower()

    if storage_type == 'cloud':
        return SpacesImageStore(
            region=get_config_value('DO_SPACES_REGION'),
            space_name=get_config_value('DO_SPACES_NAME'),
            access_key=get_config_value('DO_SPACES_KEY'),
            secret_key=get_config_value('DO_SPACES_SECRET'),
            folder=get_config_value('SPACES_FOLDER', 'uploads'),
            endpoint_url=get_config_value('DO_SPACES_ENDPOINT'),
            public_url=get_config_value('DO_SPACES_PUBLIC_URL'),
            max_dimension=get_config_value('CLOUD_MAX_DIMENSION', 1200),
            max_bytes=get_config_value('CLOUD_MAX_FILE_SIZE'),
        )

    if storage_type != 'local':
        raise ValueError(f"Unknown STORAGE_TYPE: {storage_type}")

    return LocalImageStore(
        upload_dir=get_config_value('UPLOAD_FOLDER'),
        url_prefix=get_config_value('UPLOAD_URL_PREFIX', '/uploads/projects'),
        max_bytes=get_config_value('MAX_FILE_SIZE', 5 * 1024 * 1024),
    )
