"""
Replay a recorded session through a grader.

Input is JSON lines, one message per line, in the same shapes the
WebSocket service accepts:

  {"landmarks": [{"x": .., "y": .., "z": .., "visibility": ..}, ...], "ts": 12.3}
  {"gps": {"latitude": .., "longitude": .., "timestamp": ..}}
  {"command": "start_run", "ts": 0.0}

Usage example:

  pt-grader-replay --exercise pushup --input session.jsonl \\
    --csv per_frame.csv --age 20 --gender male

The summary (reps, form score, points) is printed as JSON on stdout.
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .config import GraderConfig
from .graders import AnyGrader, GPSFix, RunningGrader, build_grader
from .landmarks import PoseFrame

logger = logging.getLogger(__name__)

CSV_FIELDS = ["line", "timestamp", "state", "rep_increment", "rep_count", "form_score", "form_fault"]


def iter_messages(path: Path) -> Iterator[Dict[str, Any]]:
    """Yield decoded messages, skipping blank and malformed lines."""
    with path.open() as f:
        for lineno, raw in enumerate(f, start=1):
            raw = raw.strip()
            if not raw:
                continue
            try:
                message = json.loads(raw)
            except json.JSONDecodeError as exc:
                logger.warning("line %d: skipping malformed JSON (%s)", lineno, exc)
                continue
            if not isinstance(message, dict):
                logger.warning("line %d: skipping non-object message", lineno)
                continue
            message["_line"] = lineno
            yield message


def replay(grader: AnyGrader, messages: Iterator[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Feed every message to ``grader``; returns one row per graded frame or fix."""
    rows: List[Dict[str, Any]] = []
    for message in messages:
        lineno = message.get("_line")

        if "command" in message:
            _apply_command(grader, message)
            continue

        if "gps" in message:
            if not isinstance(grader, RunningGrader):
                logger.warning("line %s: GPS fix ignored for %s", lineno, grader.name)
                continue
            fix = GPSFix.from_dict(message["gps"])
            result = grader.update_gps_position(fix)
            timestamp = fix.timestamp
        elif "landmarks" in message:
            if "ts" not in message:
                logger.warning("line %s: landmarks without a ts, frame skipped", lineno)
                continue
            frame = PoseFrame.from_dicts(message["landmarks"], message["ts"])
            result = grader.process_frame(frame)
            timestamp = frame.timestamp
        else:
            logger.warning("line %s: no landmarks, gps or command", lineno)
            continue

        rows.append(
            {
                "line": lineno,
                "timestamp": timestamp,
                "state": result.state,
                "rep_increment": result.rep_increment,
                "rep_count": grader.rep_count,
                "form_score": result.form_score,
                "form_fault": result.form_fault or "",
            }
        )
    return rows


def _apply_command(grader: AnyGrader, message: Dict[str, Any]) -> None:
    command = message.get("command")
    timestamp = message.get("ts")
    if command == "reset":
        grader.reset()
    elif command == "start_run" and isinstance(grader, RunningGrader):
        grader.start_run(timestamp)
    elif command == "stop_run" and isinstance(grader, RunningGrader):
        grader.stop_run(timestamp)
    else:
        logger.warning("Ignoring command %r for %s", command, grader.name)


def write_csv(rows: List[Dict[str, Any]], path: Path) -> None:
    with path.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        writer.writerows(rows)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Replay a recorded pose or GPS session through a grader.")
    parser.add_argument("--exercise", type=str, required=True, help="pushup / situp / pullup / running")
    parser.add_argument("--input", type=Path, required=True, help="JSON-lines recording")
    parser.add_argument("--csv", type=Path, default=None, help="Optional per-frame CSV output")
    parser.add_argument("--age", type=int, default=None)
    parser.add_argument("--gender", type=str, default=None, help="male / female")
    parser.add_argument("--debug", action="store_true", help="Log phase transitions and rejected cycles")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    if not args.input.exists():
        print(f"Input file not found: {args.input}", file=sys.stderr)
        return 1

    config = GraderConfig.from_env()
    if args.debug:
        config = replace(config, debug_mode=True)

    try:
        grader = build_grader(args.exercise, config)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    rows = replay(grader, iter_messages(args.input))
    if isinstance(grader, RunningGrader):
        grader.stop_run()

    summary = grader.summary()
    try:
        summary["apft_score"] = grader.get_apft_score(args.age, args.gender)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    summary["frames"] = len(rows)

    if args.csv is not None:
        write_csv(rows, args.csv)
        logger.info("Wrote %d rows to %s", len(rows), args.csv)

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
