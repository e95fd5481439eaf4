"""Hash calculation for ROM files."""

import hashlib
from pathlib import Path
from typing import Optional


def calculate_hash(
    file_path: Path,
    algorithm: str = 'md5',
    size_limit: int = 0
) -> Optional[str]:
    """
    Calculate a whole-file digest, reading in chunks.

    Args:
        file_path: Path to file to hash
        algorithm: Hash algorithm ('md5', 'sha1')
        size_limit: Maximum file size to hash. 0 means no limit.

    Returns:
        Lower-case hex digest, or None if file exceeds limit

    Raises:
        OSError: If file cannot be read
        ValueError: If algorithm is not supported
    """
    if algorithm not in ('md5', 'sha1'):
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    if size_limit > 0 and file_path.stat().st_size > size_limit:
        return None

    chunk_size = 8 * 1024 * 1024
    hasher = hashlib.md5() if algorithm == 'md5' else hashlib.sha1()
    with open(file_path, 'rb') as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            hasher.update(chunk)

    return hasher.hexdigest()
