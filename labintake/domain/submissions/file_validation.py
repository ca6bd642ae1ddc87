"""File validation and storage key helpers for intake attachments.

Only extension sniffing is performed; content is not inspected.
"""

import hashlib
import os
from datetime import datetime
from typing import Optional, Tuple

ALLOWED_EXTENSIONS = {
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".webp",
    ".heic",
    ".pdf",
}

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".pdf": "application/pdf",
}


def file_extension(filename: str) -> str:
    """Lower-cased extension including the dot, or '' if there is none."""
    return os.path.splitext(filename or "")[1].lower()


def is_allowed_extension(filename: str) -> bool:
    """Check the filename extension against ALLOWED_EXTENSIONS

    Example:
        >>> is_allowed_extension('script.JPG')
        True
        >>> is_allowed_extension('script.exe')
        False
    """
    return file_extension(filename) in ALLOWED_EXTENSIONS


def guess_content_type(filename: str, declared: Optional[str] = None) -> str:
    """Content type from the extension, falling back to the declared type."""
    return CONTENT_TYPES.get(file_extension(filename)) or declared or "application/octet-stream"


def validate_file_size(size_bytes: int, max_size: int) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Returns:
        Tuple of (is_valid, error_message)
    """
    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate an uploaded filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No null bytes or control characters
    - Extension in ALLOWED_EXTENSIONS

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    if not is_allowed_extension(filename):
        allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
        return False, f"Unsupported file type '{file_extension(filename) or 'none'}'. Allowed: {allowed}"

    return True, None


def build_storage_key(
    prefix: str,
    group: str,
    index: int,
    content: bytes,
    filename: str,
    now: datetime,
) -> str:
    """Build the object key for one uploaded file.

    Format: {prefix}/{group}/{YYYYmmddHHMM}_{index:03d}_{sha256[:8]}{ext}

    The minute-resolution timestamp plus the content digest make a retried
    upload of the same file land on the same key, while a different file at the
    same position gets a different key.

    Example:
        >>> build_storage_key('draft-7', 'script', 0, b'x', 'a.png', datetime(2026, 1, 2, 3, 4))
        'draft-7/script/202601020304_000_2d711642.png'
    """
    digest = hashlib.sha256(content).hexdigest()[:8]
    stamp = now.strftime("%Y%m%d%H%M")
    return f"{prefix}/{group}/{stamp}_{index:03d}_{digest}{file_extension(filename)}"
