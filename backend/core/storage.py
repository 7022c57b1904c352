"""
Rentas — Document storage

Files live in a named bucket on top of Django's storage API and are
exposed through public URLs of the form

    <STORAGE_PUBLIC_URL>/storage/v1/object/public/<bucket>/<path>

Downloads resolve such a URL back to (bucket, path) before reading the
bytes, so a URL from another host or layout is rejected up front.
"""
import logging
import posixpath
from urllib.parse import quote, unquote, urlparse

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import transaction
from django.utils import timezone

from .exceptions import StorageLocationError, StoredFileNotFound
from .models import Document

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = 'storage/v1/object/public'


class BlobStorage:
    """A single bucket: upload, public URL, download and delete by path."""

    def __init__(self, bucket=None, storage=None):
        self.bucket = bucket or settings.DOCUMENTS_BUCKET
        self.storage = storage or default_storage

    def _key(self, path):
        return posixpath.join(self.bucket, path)

    def upload(self, path, content):
        """Store content under path and return (stored_path, public_url)."""
        if isinstance(content, bytes):
            content = ContentFile(content)
        name = self.storage.save(self._key(path), content)
        stored_path = posixpath.relpath(name.replace('\\', '/'), self.bucket)
        logger.info('Stored %s in bucket %s', stored_path, self.bucket)
        return stored_path, self.get_public_url(stored_path)

    def get_public_url(self, path):
        base = settings.STORAGE_PUBLIC_URL.rstrip('/')
        return f'{base}/{PUBLIC_PREFIX}/{quote(self.bucket)}/{quote(path)}'

    def download(self, path):
        key = self._key(path)
        if not self.storage.exists(key):
            raise StoredFileNotFound()
        with self.storage.open(key, 'rb') as fh:
            return fh.read()

    def delete(self, path):
        self.storage.delete(self._key(path))


def parse_storage_url(file_url):
    """Split a public file URL into (bucket, path)."""
    parsed = urlparse(file_url or '')
    parts = [p for p in unquote(parsed.path).split('/') if p]
    if 'object' not in parts:
        raise StorageLocationError()
    idx = parts.index('object')
    if parts[idx + 1:idx + 2] != ['public']:
        raise StorageLocationError()
    bucket = parts[idx + 2] if len(parts) > idx + 2 else ''
    path = '/'.join(parts[idx + 3:])
    if not bucket or not path:
        raise StorageLocationError()
    return bucket, path


def document_path(property_id, doc_type, file_name, now=None):
    stamp = int((now or timezone.now()).timestamp() * 1000)
    return f'{property_id}/{doc_type}_{stamp}_{file_name}'


def upload_document(property_obj, uploaded_file, doc_type,
                    owner=Document.OWNER_TENANT, blobs=None):
    """
    Store the file under <property_id>/<TYPE>_<ms>_<name> and record it.
    The stored file is removed again if the Document row cannot be written.
    """
    blobs = blobs or BlobStorage()
    file_name = posixpath.basename(uploaded_file.name)
    stored_path, url = blobs.upload(
        document_path(property_obj.id, doc_type, file_name), uploaded_file
    )
    try:
        with transaction.atomic():
            document = Document.objects.create(
                property=property_obj,
                type=doc_type,
                file_url=url,
                file_name=file_name,
                document_owner=owner,
            )
    except Exception:
        logger.warning('Removing orphaned upload %s', stored_path)
        blobs.delete(stored_path)
        raise
    return document


def download_document(document):
    """Return (file_name, bytes) for a stored document."""
    bucket, path = parse_storage_url(document.file_url)
    content = BlobStorage(bucket=bucket).download(path)
    return download_name(document), content


def download_name(document):
    if document.file_name:
        return document.file_name
    ext = posixpath.splitext(urlparse(document.file_url).path)[1].lower()
    return f'document{ext or ".bin"}'


def delete_document_file(document):
    """Best effort removal of the stored file behind a document."""
    try:
        bucket, path = parse_storage_url(document.file_url)
    except StorageLocationError:
        logger.warning('Document %s has no resolvable file URL', document.id)
        return
    BlobStorage(bucket=bucket).delete(path)
