import os
import logging
from typing import Optional

# Default read cap (in bytes); larger files are indexed without content
DEFAULT_MAX_FILE_SIZE = 1_000_000


def read_text(
    path: str,
    max_bytes: Optional[int] = None,
    encoding: str = "utf-8",
) -> Optional[str]:
    """
    Reads a text file from the project tree, never raising for per-file failures.

    Args:
        path: Absolute path of the file
        max_bytes: Files bigger than this are skipped (default: 1 MB)
        encoding: Text encoding; undecodable bytes are dropped

    Returns:
        The file content, or None when the file is too big or cannot be read
    """
    logger = logging.getLogger(__name__)
    limit = max_bytes or DEFAULT_MAX_FILE_SIZE

    try:
        size = os.path.getsize(path)
        if size > limit:
            logger.debug(f"Skipping content of {path} ({size} bytes > {limit})")
            return None
        with open(path, "rb") as f:
            data = f.read(limit)
    except OSError as e:
        # Permission denied, broken symlink, file vanished mid-walk
        logger.debug(f"Unreadable file {path}: {e}")
        return None

    return data.decode(encoding, errors="ignore")
