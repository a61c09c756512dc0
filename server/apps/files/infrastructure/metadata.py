"""Metadata extraction utilities for files and links."""

import mimetypes
import re
from pathlib import PurePosixPath
from typing import Final
from urllib.parse import urlsplit

from server.apps.files.models import FileType

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_FALLBACK_FILENAME: Final = 'downloaded_file'

_EXTENSION_TYPES: Final = {
    'pdf': FileType.PDF,
    'doc': FileType.WORD,
    'docx': FileType.WORD,
    'xls': FileType.EXCEL,
    'xlsx': FileType.EXCEL,
    'ppt': FileType.PPTX,
    'pptx': FileType.PPTX,
    'jpg': FileType.IMAGE,
    'jpeg': FileType.IMAGE,
    'png': FileType.IMAGE,
    'gif': FileType.IMAGE,
    'mp4': FileType.VIDEO,
    'mp3': FileType.AUDIO,
    'aac': FileType.AUDIO,
    'wav': FileType.AUDIO,
    'flac': FileType.AUDIO,
    'aiff': FileType.AUDIO,
    'alac': FileType.AUDIO,
    'ogg': FileType.AUDIO,
}

# UTF-8 names that were decoded as Latin-1/cp1252 somewhere upstream
_MOJIBAKE_FIXES: Final = (
    ('Ã¡', 'á'),
    ('Ã©', 'é'),
    ('Ã\xad', 'í'),
    ('Ã³', 'ó'),
    ('Ãº', 'ú'),
    ('Ã\x81', 'Á'),
    ('Ã‰', 'É'),
    ('Ã\x8d', 'Í'),
    ('Ã“', 'Ó'),
    ('Ãš', 'Ú'),
    ('Ã±', 'ñ'),
    ('Ã‘', 'Ñ'),
)

_INVALID_CHARS: Final = re.compile(r'[/\\?%*:|"<>]')
_WHITESPACE: Final = re.compile(r'\s+')

_YOUTUBE_HOSTS: Final = frozenset((
    'youtube.com',
    'youtu.be',
    'youtube-nocookie.com',
))


def _suffix(filename: str) -> str:
    # Dotfiles such as '.env' have no extension
    return PurePosixPath(filename.strip().replace('\\', '/')).suffix


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    return _suffix(filename).lstrip('.').lower()


def classify_extension(filename: str) -> FileType:
    """Classify an uploaded file by its extension.

    Args:
        filename: Original filename.

    Returns:
        Matching FileType, ``other`` for unknown extensions.
    """
    return _EXTENSION_TYPES.get(get_file_extension(filename), FileType.OTHER)


def detect_mime_type(filename: str, declared: str | None = None) -> str:
    """Detect MIME type from file.

    A specific type declared by the client wins over the guess made
    from the filename extension.

    Args:
        filename: Filename with extension.
        declared: Content type sent with the upload, if any.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    if declared and declared != _DEFAULT_MIME_TYPE:
        return declared
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def sanitize_filename(filename: str) -> str:
    """Make a client supplied filename safe to store and display.

    Repairs common accent mojibake, replaces characters that are invalid
    in filenames with ``_`` and normalizes whitespace. The original
    extension is kept even when the rest of the name is discarded.

    Args:
        filename: Name as received from the client.

    Returns:
        Sanitized filename.
    """
    extension = _INVALID_CHARS.sub('_', _suffix(filename))

    corrected = filename
    for broken, fixed in _MOJIBAKE_FIXES:
        corrected = corrected.replace(broken, fixed)

    sanitized = _INVALID_CHARS.sub('_', corrected)
    sanitized = _WHITESPACE.sub(' ', sanitized).strip()

    if not sanitized:
        return f'{_FALLBACK_FILENAME}{extension}'
    if _suffix(sanitized) != extension:
        return f'{sanitized}{extension}'
    return sanitized


def classify_link(url: str) -> FileType:
    """Classify an external link by its host.

    Args:
        url: Well-formed absolute URL.

    Returns:
        ``video_link`` for YouTube hosts, ``generic_link`` otherwise.
    """
    hostname = (urlsplit(url).hostname or '').lower()
    if hostname in _YOUTUBE_HOSTS or hostname.endswith('.youtube.com'):
        return FileType.VIDEO_LINK
    return FileType.GENERIC_LINK


def parse_tag_names(tags_csv: str | None) -> list[str]:
    """Split a comma separated tag list into normalized names.

    Args:
        tags_csv: Raw client value, e.g. ``'Torax, rx ,,TORAX'``.

    Returns:
        Lowercase, trimmed, non-empty names without duplicates, in
        input order (``['torax', 'rx']`` for the example).
    """
    if not tags_csv:
        return []
    names: list[str] = []
    for raw_name in tags_csv.split(','):
        tag_name = raw_name.strip().lower()
        if tag_name and tag_name not in names:
            names.append(tag_name)
    return names
