"""
Vickrey auction lifecycle.

    NOT_STARTED --start--> COMMIT --commit_end--> REVEAL --deadline--> ENDED

The phase is a pure function of the current time and the auction's
timestamps, so every caller observing the same clock agrees on it.
Boundaries belong to the later phase: at exactly `commit_end` the auction
is revealing.
"""

from enum import Enum
from typing import Optional

from auctionhouse.core.models import AuctionState
from auctionhouse.errors import ConfigurationError


class VickreyPhase(str, Enum):
    NOT_STARTED = "not_started"
    COMMIT = "commit"
    REVEAL = "reveal"
    ENDED = "ended"


def vickrey_phase(
    now: float,
    commit_end: float,
    deadline: float,
    start: Optional[float] = None,
) -> VickreyPhase:
    """Phase of a Vickrey auction at time `now`. Without `start` it is already open."""
    if commit_end > deadline or (start is not None and start > commit_end):
        raise ConfigurationError(
            f"Vickrey timestamps out of order: start={start} commit_end={commit_end} deadline={deadline}"
        )

    if start is not None and now < start:
        return VickreyPhase.NOT_STARTED
    if now < commit_end:
        return VickreyPhase.COMMIT
    if now < deadline:
        return VickreyPhase.REVEAL
    return VickreyPhase.ENDED


def phase_of(state: AuctionState, now: float) -> VickreyPhase:
    """Phase of a Vickrey snapshot; a claimed auction is always ended."""
    if state.is_claimed:
        return VickreyPhase.ENDED
    return vickrey_phase(now, state.extra["commit_end"], state.deadline, start=state.extra["start_time"])
