"""
Filename and content-type helpers.

The display name is sanitized once, at upload time, and only ever used for
the ``Content-Disposition`` header and the upload response. It never
addresses storage.
"""

import mimetypes
import os
import re
import unicodedata
from urllib.parse import quote

DEFAULT_FILENAME = "document"
DEFAULT_MAX_LENGTH = 120
DEFAULT_MIME_TYPE = "application/octet-stream"

ELLIPSIS = "…"

# Reserved on common filesystems, plus brackets, which viewers tend to
# mangle in titles.
_FORBIDDEN_CHARS = re.compile(r'[<>:"/\\|?*()\[\]{}]')
_WHITESPACE_RUN = re.compile(r"\s+")
_UNDERSCORE_RUN = re.compile(r"_{2,}")

OFFICE_MIME_TYPES = {
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".doc": "application/msword",
    ".xls": "application/vnd.ms-excel",
    ".ppt": "application/vnd.ms-powerpoint",
}


def sanitize_filename(
    filename: str | None,
    max_length: int = DEFAULT_MAX_LENGTH,
    default: str = DEFAULT_FILENAME,
) -> str:
    """
    Produce a display-safe filename.

    Steps, in order:
    - drop control and format characters
    - drop ``<>:"/\\|?*`` and brackets
    - whitespace runs become a single underscore, repeated underscores collapse
    - leading/trailing dots and underscores are stripped
    - over-long names keep their extension and mark the cut with an ellipsis
    - an empty result falls back to ``default``

    >>> sanitize_filename("My Report (final).docx")
    'My_Report_final.docx'
    """
    normalized = unicodedata.normalize("NFC", filename or "")
    cleaned = "".join(ch for ch in normalized if unicodedata.category(ch)[0] != "C")
    cleaned = _FORBIDDEN_CHARS.sub("", cleaned)
    cleaned = _WHITESPACE_RUN.sub("_", cleaned)
    cleaned = _UNDERSCORE_RUN.sub("_", cleaned)
    cleaned = cleaned.strip("._")

    if not cleaned:
        return default

    if len(cleaned) > max_length:
        cleaned = _truncate(cleaned, max_length)

    return cleaned or default


def _truncate(name: str, max_length: int) -> str:
    base, ext = os.path.splitext(name)
    # An "extension" that eats most of the budget is not worth preserving.
    if len(ext) + len(ELLIPSIS) >= max_length:
        base, ext = name, ""

    keep = max_length - len(ext) - len(ELLIPSIS)
    base = base[:keep].rstrip("._")
    if not base:
        return name[:max_length]
    return f"{base}{ELLIPSIS}{ext}"


def guess_mime_type(filename: str, declared: str | None = None) -> str:
    """
    Pick the content type to serve a document with.

    The uploader's declared type wins unless it is missing or the generic
    octet-stream; then the extension decides.
    """
    if declared and declared.lower() != DEFAULT_MIME_TYPE:
        return declared

    ext = os.path.splitext(filename or "")[1].lower()
    if ext in OFFICE_MIME_TYPES:
        return OFFICE_MIME_TYPES[ext]

    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or DEFAULT_MIME_TYPE


def content_disposition(display_name: str, disposition: str = "inline") -> str:
    """
    Build a Content-Disposition value that survives non-ASCII names.

    Old clients read the quoted ASCII ``filename``; everything else reads
    the RFC 5987 ``filename*`` form.
    """
    ascii_name = display_name.encode("ascii", "replace").decode("ascii")
    ascii_name = ascii_name.replace("\\", "_").replace('"', "_")
    encoded = quote(display_name, safe="")
    return f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{encoded}"
