#!/usr/bin/env python3
"""
LayerBurn - Main Entry Point

Command line shell around the layer editor and the G-code converter.
Run with: python -m layerburn.main
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .core.layer import SvgLayer
from .io.job_io import load_job_config, save_job_config
from .laser.config import Accuracy, EngraveMode, OriginPosition, ProcessMethod
from .logging_config import setup_logging
from .session import ConversionSession, EditorSession

logger = logging.getLogger(__name__)


def _read_svg(path: str) -> Optional[str]:
    try:
        return Path(path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        return None


def _write_text(path: str, text: str, encoding: str = 'utf-8') -> bool:
    try:
        Path(path).write_text(text, encoding=encoding)
        return True
    except OSError as e:
        print(f"Error: cannot write {path}: {e}", file=sys.stderr)
        return False


def _find_layer(session: EditorSession, name: str) -> Optional[SvgLayer]:
    layer = session.state.document.get_layer_by_name(name)
    if layer is None:
        print(f"Error: no layer named '{name}'", file=sys.stderr)
    return layer


def cmd_layers(args) -> int:
    """List the layers of an SVG file."""
    content = _read_svg(args.file)
    if content is None:
        return 1
    session = EditorSession()
    state = session.load(Path(args.file).name, content)
    for index, layer in enumerate(state.working_layers):
        print(f"{index:3d}  {layer.tag_name.value:<16} {layer.name}")
    print(f"{len(state.working_layers)} layers")
    return 0


def cmd_edit(args) -> int:
    """Apply layer edits and write the resulting SVG."""
    content = _read_svg(args.file)
    if content is None:
        return 1
    session = EditorSession()
    session.load(Path(args.file).name, content)

    for name in args.duplicate:
        layer = _find_layer(session, name)
        if layer is None:
            return 1
        session.duplicate(layer.id)

    for pair in args.rename:
        old, sep, new = pair.partition('=')
        if not sep:
            print(f"Error: --rename expects OLD=NEW, got '{pair}'", file=sys.stderr)
            return 2
        layer = _find_layer(session, old)
        if layer is None:
            return 1
        session.rename(layer.id, new)

    for name in args.delete:
        layer = _find_layer(session, name)
        if layer is None:
            return 1
        if layer.is_original:
            print(f"Warning: '{name}' is an original layer and was kept", file=sys.stderr)
        session.delete(layer.id)

    for from_index, to_index in args.move:
        session.reorder(from_index, to_index)

    svg = session.confirm_changes()
    if svg is None:
        print(f"Error: {session.state.error_message}", file=sys.stderr)
        return 1

    if args.output:
        if not _write_text(args.output, svg):
            return 1
        print(session.state.success_message)
    else:
        sys.stdout.write(svg + '\n')
    return 0


def _apply_overrides(session: ConversionSession, args) -> None:
    """Apply command line settings to every layer."""
    if args.only:
        wanted = set(args.only)
        for config in session.state.layer_configs:
            if (config.layer_name in wanted) != config.enabled:
                session.toggle_layer(config.layer_id)

    for config in session.state.layer_configs:
        layer_id = config.layer_id
        if args.method is not None:
            session.update_method(layer_id, ProcessMethod(args.method))
        if args.mode is not None:
            session.update_mode(layer_id, EngraveMode(args.mode))
        if args.speed is not None:
            session.update_speed(layer_id, args.speed)
        if args.power is not None:
            session.update_power(layer_id, args.power)
        if args.passes is not None:
            session.update_passes(layer_id, args.passes)
        if args.accuracy is not None:
            session.update_accuracy(layer_id, Accuracy[args.accuracy.upper()])
        if args.fill_angle is not None:
            session.update_fill_angle(layer_id, args.fill_angle)
        if args.fill_spacing is not None:
            session.update_fill_spacing(layer_id, args.fill_spacing)

    if args.work_area is not None:
        session.update_work_area(*args.work_area)
    if args.max_s is not None:
        session.update_max_s_value(args.max_s)
    if args.origin is not None:
        session.update_origin(OriginPosition(args.origin))
    if args.position is not None:
        session.update_custom_position(*args.position)
    if args.job_name is not None:
        session.update_file_name(args.job_name)


def cmd_convert(args) -> int:
    """Convert an SVG file to G-code."""
    content = _read_svg(args.file)
    if content is None:
        return 1
    editor = EditorSession()
    state = editor.load(Path(args.file).name, content)

    session = ConversionSession()
    session.initialize(state.working_layers, state.header, state.footer)

    if args.config:
        job_config = load_job_config(args.config)
        if job_config is None:
            print(f"Error: cannot load job config {args.config}", file=sys.stderr)
            return 1
        session.apply_job_config(job_config)

    try:
        _apply_overrides(session, args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.save_config and not save_job_config(session.job_config(), args.save_config):
        print(f"Error: cannot save job config {args.save_config}", file=sys.stderr)
        return 1

    result = session.convert()
    if not result.success:
        print(f"Conversion failed: {result.error_message}", file=sys.stderr)
        return 1

    output = args.output or str(Path(args.file).with_suffix('.gcode'))
    if not _write_text(output, result.gcode, encoding='ascii'):
        return 1

    box = result.bounding_box
    print(f"Wrote {output}")
    print(f"  Lines: {result.line_count}")
    print(f"  Estimated time: {result.estimated_time_minutes:.1f} min")
    print(f"  Bounds: X{box.min_x:.2f} Y{box.min_y:.2f} to X{box.max_x:.2f} Y{box.max_y:.2f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="layerburn",
        description="Edit SVG layers and convert them to laser G-code",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Show progress (-v) or debug output (-vv)")
    parser.add_argument("--log-file", help="Also write the log to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    layers = sub.add_parser("layers", help="List the layers of an SVG file")
    layers.add_argument("file")
    layers.set_defaults(func=cmd_layers)

    edit = sub.add_parser("edit", help="Duplicate, rename, delete or move layers")
    edit.add_argument("file")
    edit.add_argument("--duplicate", action="append", default=[], metavar="NAME")
    edit.add_argument("--rename", action="append", default=[], metavar="OLD=NEW")
    edit.add_argument("--delete", action="append", default=[], metavar="NAME")
    edit.add_argument("--move", action="append", default=[], nargs=2, type=int,
                      metavar=("FROM", "TO"))
    edit.add_argument("-o", "--output", help="Output SVG (default: stdout)")
    edit.set_defaults(func=cmd_edit)

    convert = sub.add_parser("convert", help="Convert an SVG file to G-code")
    convert.add_argument("file")
    convert.add_argument("-o", "--output", help="Output G-code (default: FILE.gcode)")
    convert.add_argument("--config", help="Load job settings from a JSON file")
    convert.add_argument("--save-config", help="Save the final job settings to a JSON file")
    convert.add_argument("--only", action="append", metavar="NAME",
                         help="Burn only these layers (repeatable)")
    convert.add_argument("--speed", type=int, help="Speed in mm/min (500-6000)")
    convert.add_argument("--power", type=int, help="Power in percent (0-100)")
    convert.add_argument("--passes", type=int, help="Number of passes (1-10)")
    convert.add_argument("--accuracy",
                         choices=[a.name.lower() for a in Accuracy])
    convert.add_argument("--mode", choices=[m.value for m in EngraveMode])
    convert.add_argument("--method", choices=[m.value for m in ProcessMethod])
    convert.add_argument("--fill-angle", type=int, help="Hatch angle in degrees (0-180)")
    convert.add_argument("--fill-spacing", type=float, help="Hatch spacing in mm")
    convert.add_argument("--origin", choices=[o.value for o in OriginPosition
                                              if o != OriginPosition.CUSTOM])
    convert.add_argument("--position", nargs=2, type=float, metavar=("X", "Y"),
                         help="Place the design's lower-left corner at X Y")
    convert.add_argument("--work-area", nargs=2, type=float, metavar=("W", "H"))
    convert.add_argument("--max-s", type=int, help="Controller max S value ($30)")
    convert.add_argument("--job-name", help="Job name written to the G-code header")
    convert.set_defaults(func=cmd_convert)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for LayerBurn."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    setup_logging(level, args.log_file)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
