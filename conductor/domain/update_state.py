"""State tracker for the check/download/install pipeline.

One operation at a time: a busy state only settles, either forward on success
or back to where it started on failure.
"""

from __future__ import annotations

import logging

from conductor.domain.errors import InvalidTransitionError
from conductor.domain.models import BUSY_UPDATE_STATES, UPDATE_TRANSITIONS, UpdateState


class UpdateTracker:
    """Owns the current :class:`UpdateState`.

    Only one update operation may be in flight; ``advance`` refuses to leave a
    busy state for another busy state and refuses transitions not listed in
    ``UPDATE_TRANSITIONS``.
    """

    def __init__(self) -> None:
        self._log = logging.getLogger(__name__)
        self._state = UpdateState.IDLE

    @property
    def state(self) -> UpdateState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state in BUSY_UPDATE_STATES

    def advance(self, target: UpdateState) -> None:
        allowed = UPDATE_TRANSITIONS.get(self._state, frozenset())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Update already {self._state.value}; cannot move to {target.value}."
            )
        self._log.debug("Update state %s -> %s", self._state.value, target.value)
        self._state = target

    def reset(self) -> None:
        self._state = UpdateState.IDLE


__all__ = ["UpdateTracker"]
