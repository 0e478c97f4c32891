from __future__ import annotations

from enum import StrEnum

from statemachine import State, StateMachine


class SchedulerPhase(StrEnum):
    idle = "idle"
    running = "running"


class SchedulerFSM(StateMachine):
    """Lifecycle of the broadcast scheduler.

    Only two phases: idle (nothing armed, timeline may be replaced) and running.
    `game_reset` is allowed from both so resetting an idle scheduler is a no-op.
    """

    idle = State(SchedulerPhase.idle.value, value=SchedulerPhase.idle.value, initial=True)
    running = State(SchedulerPhase.running.value, value=SchedulerPhase.running.value)

    game_started = idle.to(running)
    game_reset = running.to(idle) | idle.to.itself()

    @property
    def phase(self) -> SchedulerPhase:
        return SchedulerPhase.running if self.running.is_active else SchedulerPhase.idle
