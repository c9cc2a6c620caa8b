"""File identity and naming helpers."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

HASH_CHUNK_SIZE = 1024 * 1024  # 1 MiB

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def compute_content_hash(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Compute the SHA-256 of a file's full contents.

    Used as the video identity for the session cache: the same bytes under a
    different name are the same video.

    Args:
        file_path: Path to the file to hash.
        chunk_size: Read size per iteration.

    Returns:
        Hex-encoded SHA-256 digest.

    Raises:
        OSError: If file cannot be read.
    """
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest()


def compute_bytes_hash(data: bytes) -> str:
    """Return the hex SHA-256 of an in-memory payload."""
    return hashlib.sha256(data).hexdigest()


def safe_filename(text: str, max_length: int = 48) -> str:
    """Turn free text into a filesystem-safe filename stem."""
    stem = _UNSAFE_CHARS.sub("_", text.strip()).strip("._")
    return stem[:max_length] or "untitled"


_MIME_EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/ogg": ".ogg",
}


def extension_for_mime(mime_type: str) -> str:
    """Return a file extension for an audio MIME type (default .bin)."""
    return _MIME_EXTENSIONS.get(mime_type.lower(), ".bin")


_VIDEO_MIME_TYPES = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
    ".avi": "video/x-msvideo",
}


def guess_video_mime_type(file_path: Path) -> str:
    """Guess a video MIME type from the file extension (default video/mp4)."""
    return _VIDEO_MIME_TYPES.get(file_path.suffix.lower(), "video/mp4")
