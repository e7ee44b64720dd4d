# Utils package
from .helpers import (
    ensure_directory,
    generate_timestamp_id,
    guess_mime_type,
    format_file_size,
    safe_filename,
    build_storage_name,
    calculate_percentage,
    week_start
)

__all__ = [
    "ensure_directory",
    "generate_timestamp_id",
    "guess_mime_type",
    "format_file_size",
    "safe_filename",
    "build_storage_name",
    "calculate_percentage",
    "week_start"
]
