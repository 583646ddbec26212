#
# PROJECT: model-viewer-core
# MODULE: model_viewer/pipeline.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import logging
from typing import Callable, List, Optional

from .context import ViewerContext
from .framing import Framing, frame_camera
from .materials import apply_material
from .node import SceneNode
from .normalizer import normalize
from .parsed import AsyncSceneGraph

logger = logging.getLogger(__name__)

ContentListener = Callable[[SceneNode, Framing], None]


class UploadPipeline:
    """
    parse -> normalize -> material -> replace -> frame, for one upload at a time.

    Each accepted upload takes a new generation number from the context. A
    scene graph that finishes resolving after a newer upload started is
    discarded instead of overwriting the newer content.
    """

    def __init__(self, context: ViewerContext):
        self.context = context
        self._listeners: List[ContentListener] = []

    def subscribe(self, listener: ContentListener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: ContentListener):
        self._listeners.remove(listener)

    async def upload(self, filename: str, content) -> Optional[Framing]:
        """
        Display the model in ``content``.

        Returns the new camera framing, or None when a newer upload
        superseded this one. UnsupportedFormat, ContentEncodingError and
        ParseFailure propagate to the caller with the scene unchanged.
        """
        ctx = self.context
        parsed = ctx.registry.parse(filename, content)
        generation = ctx.next_generation()

        if isinstance(parsed, AsyncSceneGraph):
            logger.debug("%s: resolving scene graph (generation %d)", filename, generation)
            parsed = await parsed.resolve()
            if generation != ctx.generation:
                logger.warning("Discarding %s: generation %d superseded by %d",
                               filename, generation, ctx.generation)
                return None

        return self._commit(filename, parsed)

    def _commit(self, filename: str, parsed) -> Framing:
        ctx = self.context
        root = normalize(parsed)
        if not ctx.config.preserve_materials:
            apply_material(root, ctx.material)
        ctx.scene.replace(root)
        framing = frame_camera(ctx.camera, root, ctx.config)
        logger.info("Loaded %s", filename)

        for listener in list(self._listeners):
            try:
                listener(root, framing)
            except Exception:
                logger.exception("content_changed listener %r failed", listener)
        return framing
