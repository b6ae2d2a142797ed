"""CLI for inspecting saved measurement sessions."""

import argparse
import sys
from pathlib import Path

from snapmeasure.exceptions import SnapMeasureError
from snapmeasure.logging_config import get_logger, setup_logging
from snapmeasure.settings import Settings
from snapmeasure.storage.local import load_session_file

logger = get_logger("cli")


def _show(args: argparse.Namespace) -> int:
    settings = Settings.load(args.config)
    session = load_session_file(args.session, settings)
    if args.units:
        session.set_unit_system(args.units)

    cal = session.calibration
    if cal is not None:
        print(f"calibration: {cal.kind.value} {cal.pixels_per_unit:.4f} px/mm ({cal.unit})")
    else:
        print("calibration: none")
    if session.scale_overlay is not None:
        o = session.scale_overlay
        print(f"map scale: {o.screen_distance:g} {o.screen_unit} = {o.real_distance:g} {o.real_unit}")

    for m in session.measurements:
        label = f" [{m.label}]" if m.label else ""
        print(f"{m.id[:8]}  {m.mode.value:<9} {m.display_value or '(needs calibration)'}{label}")
    logger.info("Listed {} measurements from {}", len(session.measurements), args.session)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="snapmeasure", description="Inspect saved photo measurement sessions")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print every measurement with recomputed display values")
    show.add_argument("session", type=Path, help="Saved session JSON")
    show.add_argument("--units", choices=["metric", "imperial"], help="Override the saved unit system")
    show.add_argument("--config", type=Path, help="Settings YAML (default: $SNAPMEASURE_CONFIG or config/default.yaml)")

    args = parser.parse_args(argv)
    setup_logging(level=args.log_level.upper(), json_format=args.json_logs)

    try:
        return _show(args)
    except SnapMeasureError as exc:
        logger.error("{}", exc.message)
        print(f"error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
