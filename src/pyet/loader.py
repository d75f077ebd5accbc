"""File Loader - reads template files from disk."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pyet.exceptions import TemplateLoadError, TemplateNotFoundError

log = logging.getLogger(__name__)


class FileLoader:
    """Reads template text from the file system.

    Reads run in a worker thread so a render only suspends, never blocks the
    event loop, while waiting on disk.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    async def read(self, path: str | Path) -> str:
        """Read a template file.

        Args:
            path: Path to the template file.

        Returns:
            The file's text.

        Raises:
            TemplateNotFoundError: If the file does not exist.
            TemplateLoadError: If the file cannot be read or decoded.
        """
        p = Path(path)
        log.debug(f"Loading template {p}")
        try:
            return await asyncio.to_thread(p.read_text, encoding=self.encoding)
        except FileNotFoundError as e:
            raise TemplateNotFoundError(p) from e
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateLoadError(p, e) from e
