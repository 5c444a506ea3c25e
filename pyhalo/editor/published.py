"""
The (version, artifact) pair that connects the editor to the renderer.
"""

import threading
from collections import namedtuple

from ..shader.validation import ShaderArtifact


Published = namedtuple("Published", ["version", "artifact"])
Published.__doc__ = "A shader artifact together with the version it was published as."


class ShaderSlot:
    """Holds the most recently published shader.

    The version and artifact are stored as one immutable pair, which is
    swapped as a whole. A reader (e.g. the renderer, once per frame) that
    takes ``current`` always gets a matching version and artifact.

    Parameters
    ----------
    artifact : ShaderArtifact
        The initial shader.
    version : int
        The initial version. Each ``publish()`` increases it by one.
    """

    def __init__(self, artifact, version=0):
        if not isinstance(artifact, ShaderArtifact):
            raise TypeError("ShaderSlot needs a ShaderArtifact.")
        self._lock = threading.Lock()
        self._current = Published(int(version), artifact)

    def __repr__(self):
        return f"<ShaderSlot version {self._current.version}>"

    @property
    def current(self):
        """The current ``Published(version, artifact)`` pair."""
        return self._current

    @property
    def version(self):
        """The current version."""
        return self._current.version

    def publish(self, artifact):
        """Publish a new artifact, bumping the version. Returns the new pair."""
        if not isinstance(artifact, ShaderArtifact):
            raise TypeError("Only a ShaderArtifact can be published.")
        with self._lock:
            published = Published(self._current.version + 1, artifact)
            self._current = published
        return published
