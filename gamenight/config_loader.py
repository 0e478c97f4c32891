"""Load the events file into a `Timeline`.

Two formats, both `{"events": [...]}`:

- absolute: each event carries `trigger_at` as an ISO 8601 instant and an optional
  `auto_hide_after` in seconds.
- relative (handy for rehearsals): each event carries `start_time` and optional
  `end_time` as `"now"`, `"+<n>s"` or `"+<n>m"`, measured from a base instant
  (usually process start). `end_time` becomes `auto_hide_after = end - start`.

Branch children in the relative format may omit timing entirely; they are
re-stamped when injected anyway.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from gamenight.core.timeline import Timeline

logger = logging.getLogger(__name__)

_RELATIVE_TIME = re.compile(r"^\+(\d+)([sm])$")


class EventsFileError(RuntimeError):
    pass


def parse_relative_time(value: str) -> timedelta:
    if value == "now":
        return timedelta(0)

    m = _RELATIVE_TIME.match(value)
    if not m:
        raise EventsFileError(
            f'Invalid time format: "{value}". Expected "now", "+Xs" (seconds), or "+Xm" (minutes). '
            'Examples: "now", "+5s", "+2m"'
        )

    amount = int(m.group(1))
    if m.group(2) == "s":
        return timedelta(seconds=amount)
    return timedelta(minutes=amount)


def _expand_relative(raw: dict[str, Any], *, base: datetime) -> dict[str, Any]:
    out = dict(raw)
    event_id = out.get("id") or "?"

    start_raw = out.pop("start_time", None)
    end_raw = out.pop("end_time", None)

    if start_raw is not None:
        start = parse_relative_time(str(start_raw))
        out["trigger_at"] = base + start
        if end_raw is not None:
            end = parse_relative_time(str(end_raw))
            if end <= start:
                raise EventsFileError(
                    f'Event "{event_id}": end_time ({end_raw}) must be after start_time ({start_raw})'
                )
            out["auto_hide_after"] = end - start
    elif "trigger_at" not in out:
        out["trigger_at"] = base

    branches = out.get("branches")
    if isinstance(branches, list):
        out["branches"] = [_expand_relative(child, base=base) for child in branches]
    elif isinstance(branches, dict):
        out["branches"] = {
            key: [_expand_relative(child, base=base) for child in children]
            for key, children in branches.items()
        }

    return out


def expand_relative_events(events: list[dict[str, Any]], *, base: datetime) -> list[dict[str, Any]]:
    for idx, event in enumerate(events):
        if not event.get("id"):
            raise EventsFileError(f"Event at index {idx} is missing required field: id")
        if not event.get("kind"):
            raise EventsFileError(f'Event "{event["id"]}" is missing required field: kind')
        if not event.get("start_time"):
            raise EventsFileError(f'Event "{event["id"]}" is missing required field: start_time')

    return [_expand_relative(event, base=base) for event in events]


def _read_events(path: Path) -> list[dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise EventsFileError(f"Events file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise EventsFileError(f"Invalid JSON in events file {path}: {e}") from e

    events = data.get("events") if isinstance(data, dict) else None
    if not isinstance(events, list):
        raise EventsFileError(f'Events file {path} must have an "events" array')
    return events


def load_events_file(path: Path, *, relative: bool = False, base: datetime | None = None) -> Timeline:
    """Parse and validate an events file.

    Raises `EventsFileError` for unreadable or malformed files and
    `TimelineValidationError` for invalid event definitions.
    """

    events = _read_events(path)

    if relative:
        if not events:
            raise EventsFileError(f"Events file {path} must have at least one event")
        base = base or datetime.now(tz=UTC)
        events = expand_relative_events(events, base=base)
        logger.info("Relative events resolved against %s", base.isoformat())

    timeline = Timeline.load(events)
    logger.info("Loaded %d events from %s", len(timeline), path)
    return timeline
