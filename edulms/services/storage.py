"""
File storage glue: uploads go to a Supabase Storage bucket and come back as public URLs.
"""
import logging

from edulms.config import config
from edulms.errors import UploadError
from edulms.services import supabase_client

logger = logging.getLogger(__name__)

SUBMISSION_TYPES = {
    'application/pdf',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/msword',
    'text/plain',
    'image/jpeg',
    'image/png',
}

FILE_ICONS = {
    'pdf': 'fa-file-pdf',
    'docx': 'fa-file-word',
    'doc': 'fa-file-word',
    'txt': 'fa-file-lines',
    'jpg': 'fa-file-image',
    'jpeg': 'fa-file-image',
    'png': 'fa-file-image',
}


def validate_submission_file(filename, content_type, size, max_mb=None):
    max_mb = max_mb or config.max_upload_mb
    if not filename:
        raise UploadError("Please select a file to upload")
    if size > max_mb * 1024 * 1024:
        raise UploadError(f"File size exceeds {max_mb}MB limit")
    if content_type not in SUBMISSION_TYPES:
        raise UploadError("File type not supported")


def validate_avatar(content_type, size, max_mb=None):
    max_mb = max_mb or config.max_avatar_mb
    if not (content_type or '').startswith('image/'):
        raise UploadError("Please select an image file")
    if size > max_mb * 1024 * 1024:
        raise UploadError(f"File size must be less than {max_mb}MB")


def submission_path(user_id, assignment_id, filename):
    return f"submissions/{user_id}/{assignment_id}/{filename}"


def avatar_path(user_id):
    return f"avatars/{user_id}"


def upload(path, data, content_type, bucket=None):
    """Upload bytes to `path` (overwriting) and return the public URL."""
    bucket = bucket or config.storage_bucket
    try:
        store = supabase_client.get_supabase().storage.from_(bucket)
        store.upload(path, data, {"content-type": content_type, "upsert": "true"})
        url = store.get_public_url(path)
    except Exception as e:
        logger.error("Upload error for %s: %s", path, e)
        raise UploadError("File upload failed") from e
    logger.info("Uploaded %s (%d bytes)", path, len(data))
    return url


def format_file_size(size):
    """Human readable size: '0 Bytes', '512 Bytes', '1.5 KB', '2 MB'."""
    if not size:
        return '0 Bytes'
    units = ['Bytes', 'KB', 'MB']
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(size / (1024 ** i), 2)
    if value == int(value):
        value = int(value)
    return f"{value} {units[i]}"


def file_icon(filename):
    ext = (filename or '').rsplit('.', 1)[-1].lower()
    return FILE_ICONS.get(ext, 'fa-file')
