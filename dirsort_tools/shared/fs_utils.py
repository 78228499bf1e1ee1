"""File helpers used by the fixture generator and CLI output."""

import hashlib
from pathlib import Path

_CHUNK_SIZE = 64 * 1024


def compute_checksum(file_path: Path, algorithm: str = "sha256") -> str:
    """
    Compute the checksum of a file's content.

    Args:
        file_path: File to hash
        algorithm: Any algorithm accepted by hashlib.new

    Returns:
        Hexadecimal digest

    Raises:
        OSError: If the file cannot be read
    """
    hash_obj = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hash_obj.update(chunk)
    return hash_obj.hexdigest()


def format_bytes(size_bytes: int) -> str:
    """Format a byte count for display (e.g. "2.50 KB")."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if size < 1024.0 or unit == "TB":
            break
        size /= 1024.0
    if unit == "B":
        return f"{int(size)} B"
    return f"{size:.2f} {unit}"
