from __future__ import annotations

import argparse
import sys

from kv6view.app import run_app
from kv6view.config import (
    APP_NAME,
    APP_VERSION,
    WINDOW_WIDTH,
    WINDOW_HEIGHT,
    MOUSE_SENSITIVITY,
    DEFAULT_TEAM_COLOR,
)
from kv6view.model.kv6 import KV6Error
from kv6view.render.controls import KeyBindings

def _byte(value: str) -> int:
    v = int(value)
    if not 0 <= v <= 255:
        raise argparse.ArgumentTypeError(f"color component out of range 0..255: {value}")
    return v

def _binding(value: str) -> tuple[str, str]:
    action, sep, key = value.partition("=")
    if not sep or not action or not key:
        raise argparse.ArgumentTypeError(f"expected ACTION=KEY, got {value!r}")
    return action.strip(), key.strip()

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog=APP_NAME, description=f"View KV6 voxel models in OpenGL (ModernGL + pygame) v{APP_VERSION}")
    p.add_argument("file", help="KV6 model to view")
    p.add_argument(
        "--aos-team",
        dest="team_color",
        type=_byte,
        nargs=3,
        metavar=("R", "G", "B"),
        default=list(DEFAULT_TEAM_COLOR),
        help="replace voxels colored 0,0,0 with this color",
    )
    p.add_argument("--light-model", default=None, help="KV6 model drawn at the light position (default: built-in ball)")
    p.add_argument("--width", type=int, default=WINDOW_WIDTH, help="window width")
    p.add_argument("--height", type=int, default=WINDOW_HEIGHT, help="window height")
    p.add_argument("--sensitivity", type=float, default=MOUSE_SENSITIVITY, help="mouse sensitivity (default: 5.0)")
    p.add_argument(
        "--bind",
        type=_binding,
        action="append",
        default=[],
        metavar="ACTION=KEY",
        help="rebind a key, e.g. --bind forward=UP --bind boost=rshift (pygame K_ names)",
    )
    p.add_argument("--strict", action="store_true", help="reject models whose voxel tables disagree")
    p.add_argument("--debug", action="store_true", help="print model stats and frame logs")
    p.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return p

def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        bindings = KeyBindings().with_overrides(dict(args.bind))
    except ValueError as e:
        parser.error(str(e))

    try:
        run_app(
            model_path=str(args.file),
            width=max(64, int(args.width)),
            height=max(64, int(args.height)),
            team_color=tuple(args.team_color),
            light_model_path=args.light_model,
            sensitivity=float(args.sensitivity),
            bindings=bindings,
            strict=bool(args.strict),
            debug=bool(args.debug),
        )
    except (OSError, KV6Error) as e:
        print(f"{APP_NAME}: error: {e}", file=sys.stderr)
        sys.exit(1)
