from __future__ import annotations

import logging

from gamenight.config import get_events_path, strict_events, use_relative_events
from gamenight.config_loader import load_events_file
from gamenight.core.scheduler import Scheduler
from gamenight.core.timeline import Timeline

logger = logging.getLogger(__name__)


def load_timeline_for_app() -> Timeline:
    path = get_events_path()

    # Default behavior: run with an empty timeline when no events file is present.
    # Force strict behavior with GAMENIGHT_STRICT_EVENTS=1.
    if not path.exists() and not strict_events():
        logger.warning("No events file at %s; starting with an empty timeline", path)
        return Timeline.empty()

    return load_events_file(path, relative=use_relative_events())


def init_scheduler_for_app() -> Scheduler:
    return Scheduler(timeline=load_timeline_for_app())
