"""
Follow a shader file on disk, so it can be edited in any text editor.
"""

import asyncio
import os

from watchfiles import awatch

from ..utils import logger


class FileWatcher:
    """Watch a file and pass its new text to a callback when it changes.

    The parent directory is watched rather than the file itself, because
    many editors save by replacing the file.

    Parameters
    ----------
    path : str
        The file to watch.
    on_text : callable
        Called with the new text of the file, e.g. ``ShaderSession.edit``.
    """

    def __init__(self, path, on_text):
        self._path = os.path.realpath(path)
        self._on_text = on_text
        self._last_text = None
        self._task = None

    @property
    def path(self):
        return self._path

    async def start(self):
        """Start watching. Must be called from a running asyncio loop."""
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._watch())
        logger.info(f"Watching {self._path}")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Stopped watching {self._path}")

    async def _watch(self):
        async for changes in awatch(os.path.dirname(self._path)):
            if any(os.path.realpath(p) == self._path for _, p in changes):
                self._reload()

    def _reload(self):
        try:
            with open(self._path, "rb") as f:
                text = f.read().decode("utf-8")
        except (OSError, UnicodeDecodeError) as err:
            # Removed, or caught halfway through a save
            logger.warning(f"Cannot read {self._path}: {err}")
            return
        if text == self._last_text:
            return
        self._last_text = text
        logger.info(f"Reloading {self._path}")
        try:
            self._on_text(text)
        except Exception:
            logger.exception("Error in file watcher callback")
