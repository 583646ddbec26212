#
# PROJECT: model-viewer-core
# MODULE: model_viewer/__init__.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

from .math_utils import Vec3, Mat4
from .config import ViewerConfig
from .color import parse_hex_color
from .errors import (ViewerError, UnsupportedFormat, ParseFailure,
                     MissingSubresource, SceneNotReady, ContentEncodingError)
from .mesh import Geometry
from .material import MaterialDescriptor, NEUTRAL_MATERIAL
from .node import NodeType, SceneNode, AmbientLight, DirectionalLight, GridHelper
from .parsed import GeometryOnly, FlatMesh, Hierarchy, AsyncSceneGraph
from .registry import FormatRegistry, Encoding, default_registry
from .normalizer import normalize
from .materials import apply_material
from .scene import Scene
from .camera import Camera
from .framing import BoundingBox, Framing, compute_bounds, frame, frame_camera
from .context import ViewerContext
from .pipeline import UploadPipeline
from .reactor import LiveParameterReactor
