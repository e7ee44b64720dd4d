"""
Utility functions for the application
"""
import re
import time
import logging
import mimetypes
import unicodedata
from pathlib import Path
from datetime import datetime, timedelta
from typing import Optional, Union

logger = logging.getLogger(__name__)


def ensure_directory(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, create if not"""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def generate_timestamp_id() -> str:
    """Millisecond timestamp used to keep stored filenames unique"""
    return str(int(time.time() * 1000))


def guess_mime_type(filename: str, declared: Optional[str] = None) -> str:
    """Prefer the client-declared content type, fall back to the filename"""
    if declared and declared != "application/octet-stream":
        return declared.split(";")[0].strip().lower()
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or "application/octet-stream"


def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format"""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.2f} TB"


def safe_filename(filename: str) -> str:
    """
    Make a filename safe for storage paths.

    Accents are stripped, anything outside [A-Za-z0-9.-] becomes an
    underscore, runs of underscores collapse and edge underscores go.
    """
    normalized = unicodedata.normalize("NFD", filename or "")
    ascii_only = "".join(
        ch for ch in normalized
        if not unicodedata.combining(ch) and ord(ch) < 128
    )
    cleaned = re.sub(r"[^a-zA-Z0-9.-]", "_", ascii_only)
    cleaned = re.sub(r"_+", "_", cleaned).strip("_")
    return cleaned or "file"


def build_storage_name(user_id: str, filename: str) -> str:
    """Relative storage path: <user_id>/<timestamp>-<safe name>"""
    return f"{user_id}/{generate_timestamp_id()}-{safe_filename(filename)}"


def calculate_percentage(correct: int, total: int) -> int:
    """Whole-number percentage, 0 when there is nothing to score"""
    if total == 0:
        return 0
    return round((correct / total) * 100)


def week_start(moment: datetime) -> str:
    """ISO date of the Sunday starting the week that contains moment"""
    days_since_sunday = (moment.weekday() + 1) % 7
    return (moment - timedelta(days=days_since_sunday)).date().isoformat()
