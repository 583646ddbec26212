#
# PROJECT: model-viewer-core
# MODULE: model_viewer/scene.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import logging
from typing import Iterable, Optional, Tuple

from .color import coerce_color
from .errors import SceneNotReady
from .node import FURNITURE_TYPES, SceneNode

logger = logging.getLogger(__name__)


class Scene:
    """
    Top-level container read by the render loop.

    ``children`` is an immutable tuple that is swapped in a single
    assignment, so a reader sees either the old or the new content, never a
    half-cleared scene. Persistent furniture (top-level Light and Helper
    nodes) survives every replacement; the content root is owned here and
    disposed when replaced.
    """

    def __init__(self, background: int = 0x2C2C2C):
        self.children: Tuple[SceneNode, ...] = ()
        self._content: Optional[SceneNode] = None
        self._background = coerce_color(background)
        self.ready = False

    def initialize(self, furniture: Iterable[SceneNode] = ()):
        """Install the persistent furniture and accept content from now on."""
        self.children = tuple(furniture)
        self.ready = True

    @property
    def content(self) -> Optional[SceneNode]:
        return self._content

    @property
    def furniture(self) -> Tuple[SceneNode, ...]:
        return tuple(n for n in self.children if n.kind in FURNITURE_TYPES)

    @property
    def background(self) -> int:
        return self._background

    def set_background(self, color) -> int:
        self._background = coerce_color(color)
        return self._background

    def replace(self, new_root: SceneNode) -> Optional[SceneNode]:
        """
        Swap the displayed content for ``new_root``.

        Every top-level node except furniture is removed. Raises
        SceneNotReady, without touching anything, before initialize().
        """
        if not self.ready:
            raise SceneNotReady("Scene is not initialized; retry after initialize()")
        previous = self._content
        kept = tuple(n for n in self.children if n.kind in FURNITURE_TYPES)
        self.children = kept + (new_root,)
        self._content = new_root
        if previous is not None and previous is not new_root:
            previous.dispose()
        logger.info("Scene content replaced with %r", new_root)
        return previous

    def clear_content(self):
        if self._content is None:
            return
        self.children = self.furniture
        self._content.dispose()
        self._content = None

    def close(self):
        """Session teardown: release content and furniture."""
        self.clear_content()
        for node in self.children:
            node.dispose()
        self.children = ()
        self.ready = False
