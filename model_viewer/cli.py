#
# PROJECT: model-viewer-core
# MODULE: model_viewer/cli.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import argparse
import asyncio
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from urllib.parse import unquote

from .color import parse_hex_color, rgb_to_int, to_hex
from .config import ViewerConfig
from .context import ViewerContext
from .errors import MissingSubresource, ViewerError
from .framing import Framing, frame_camera
from .pipeline import UploadPipeline
from .reactor import LiveParameterReactor
from .registry import Encoding

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    epilog = """\
examples:
  %(prog)s robot.glb                                Load and frame a glTF binary
  %(prog)s part.stl --material-color #FF8800        Orange STL
  %(prog)s house.obj --wireframe --bg-color #101020 Wireframe on dark blue
  %(prog)s rig.fbx --scale 0.01 --json              Shrink a centimeter FBX, JSON summary
"""
    parser = argparse.ArgumentParser(
        prog="model-viewer",
        description="Load a 3D model, compose the scene and report the framing",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("model", help="Path to a .gltf, .glb, .obj, .fbx or .stl file")
    parser.add_argument("--material-color", default=None,
                        help="Material color in hex #RRGGBB (default: #0055FF)")
    parser.add_argument("--bg-color", default=None,
                        help="Background color in hex #RRGGBB (default: #2C2C2C)")
    parser.add_argument("--wireframe", action="store_true",
                        help="Render the material as wireframe")
    parser.add_argument("--keep-materials", action="store_true",
                        help="Keep the file's own materials on load")
    parser.add_argument("--scale", type=float, default=None,
                        help="Uniform scale applied to the loaded model "
                             "(the camera is reframed on the scaled bounds)")
    parser.add_argument("--fov", type=float, default=None,
                        help="Vertical field of view in degrees (default: 75)")
    parser.add_argument("--ambient", type=float, default=None,
                        help="Ambient light intensity (default: 2)")
    parser.add_argument("--directional", type=float, default=None,
                        help="Directional light intensity (default: 2)")
    parser.add_argument("--no-grid", action="store_true",
                        help="Hide the grid helper")
    parser.add_argument("--json", action="store_true",
                        help="Print the summary as JSON")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")
    return parser.parse_args(argv)


def file_resolver(base: Path):
    """Resolve relative glTF buffer URIs inside the model's directory."""
    root = base.resolve()

    async def resolve(uri: str) -> bytes:
        if "://" in uri:
            raise MissingSubresource(uri, "remote URIs are not fetched")
        path = (root / unquote(uri)).resolve()
        if not path.is_relative_to(root):
            raise MissingSubresource(uri, "outside the model directory")
        return await asyncio.to_thread(path.read_bytes)
    return resolve


def read_content(context: ViewerContext, path: Path):
    decoder = context.registry.decoder_for(path.name)
    if decoder.encoding is Encoding.TEXT:
        return path.read_text(encoding="utf-8")
    return path.read_bytes()


def summarize(context: ViewerContext, framing: Framing) -> dict:
    root = context.scene.content
    kinds = Counter()
    vertices = faces = 0
    for node in root.traverse():
        kinds[node.kind.value] += 1
        if node.geometry is not None:
            vertices += node.geometry.vertex_count
            faces += node.geometry.face_count
    camera = context.camera
    return {
        "nodes": dict(sorted(kinds.items())),
        "vertices": vertices,
        "faces": faces,
        "bounds": {"min": list(framing.box.min), "max": list(framing.box.max),
                   "center": list(framing.box.center), "size": list(framing.box.size)},
        "camera": {"position": list(camera.position), "target": list(camera.target),
                   "fov": camera.fov, "near": camera.near, "far": camera.far,
                   "distance": framing.distance},
        "material": {"color": to_hex(context.material.color),
                     "wireframe": context.material.wireframe},
        "background": to_hex(context.scene.background),
        "grid": context.grid.visible,
    }


def build_config(args) -> ViewerConfig:
    config = ViewerConfig.from_env()
    config.placeholder = False
    if args.fov is not None:
        config.fov = args.fov
    if args.keep_materials:
        config.preserve_materials = True
    return config


def apply_parameters(reactor: LiveParameterReactor, args):
    """Push command-line visual options through the live parameter channels."""
    if args.material_color is not None or args.wireframe:
        rgb = parse_hex_color(args.material_color)
        if args.material_color is not None and rgb is None:
            raise ValueError(f"bad --material-color {args.material_color!r}")
        reactor.set_material(color=rgb_to_int(rgb) if rgb else None,
                             wireframe=True if args.wireframe else None)
    if args.bg_color is not None:
        reactor.set_background(args.bg_color)
    if args.ambient is not None:
        reactor.set_ambient_intensity(args.ambient)
    if args.directional is not None:
        reactor.set_directional_intensity(args.directional)
    if args.no_grid:
        reactor.set_grid_visible(False)
    if args.scale is not None:
        reactor.set_scale(args.scale)


def print_summary(path: Path, summary: dict):
    nodes = ", ".join(f"{k}:{v}" for k, v in summary["nodes"].items())
    cam = summary["camera"]
    print(f"{path.name} | {nodes} | V:{summary['vertices']} F:{summary['faces']}")
    print(f"  bounds  min={summary['bounds']['min']} max={summary['bounds']['max']}")
    print(f"  camera  pos={cam['position']} target={cam['target']} far={cam['far']:.4g}")
    print(f"  material {summary['material']['color']}"
          f"{' wireframe' if summary['material']['wireframe'] else ''}"
          f" | bg {summary['background']} | grid {'on' if summary['grid'] else 'off'}")


def run(args) -> int:
    config = build_config(args)
    level = {0: config.log_level, 1: "INFO"}.get(args.verbose, "DEBUG")
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    path = Path(args.model)
    context = ViewerContext.create(config, resolver=file_resolver(path.parent))
    try:
        try:
            content = read_content(context, path)
            framing = asyncio.run(UploadPipeline(context).upload(path.name, content))
        except ViewerError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error: cannot read {path}: {e}", file=sys.stderr)
            return 1

        try:
            apply_parameters(LiveParameterReactor(context), args)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2
        if args.scale is not None:
            framing = frame_camera(context.camera, context.content, config)

        summary = summarize(context, framing)
        if args.json:
            print(json.dumps(summary, indent=2))
        else:
            print_summary(path, summary)
        return 0
    finally:
        context.close()


def main(argv=None) -> int:
    return run(parse_args(argv))
