r"""Default implementation of the "save bytes as file" capability used by
``RestClient.download``."""

from __future__ import annotations

__all__ = ["FileSaver", "save_to_disk"]

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Optional

logger: logging.Logger = logging.getLogger(__name__)

# Called with (filename, content, media_type)
FileSaver = Callable[[str, bytes, Optional[str]], None]


def save_to_disk(filename: str, content: bytes, media_type: str | None = None) -> None:
    """Write downloaded bytes to a local file.

    Missing parent directories are created. An existing file is
    overwritten.

    Args:
        filename: Path of the file to write.
        content: The downloaded bytes.
        media_type: The declared media type of the content. Only logged.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    logger.debug(f"Saved {len(content)} bytes ({media_type or 'unknown type'}) to {path}")
