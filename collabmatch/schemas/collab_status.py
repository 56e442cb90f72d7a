"""Common enums used across schemas."""

from enum import Enum


class CollabStatus(str, Enum):
    """Collab lifecycle states.

    State Transition Flow:

    OPEN ⇄ SETTING_UP → IN_PROGRESS → ENDED
      ↓         ↓            ↓
    CANCELLED  CANCELLED   (back to OPEN/SETTING_UP while streams wait)

    State Descriptions:
    - OPEN: Created, creator's stream is in its waiting room, partner slots not all filled.
    - SETTING_UP: Every partner slot is filled, streams are still waiting to start.
    - IN_PROGRESS: At least one stream is live and at least one partner joined.
    - ENDED: Every stream with data has finished. Totals are written.
    - CANCELLED: Stream started or finished without any partner.

    Terminal states (no further transitions): ENDED, CANCELLED
    """

    OPEN = "open"
    SETTING_UP = "setting_up"
    IN_PROGRESS = "in_progress"
    ENDED = "ended"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def active_states(cls) -> list["CollabStatus"]:
        """States in which the collab is still tracked."""
        return [
            CollabStatus.OPEN,
            CollabStatus.SETTING_UP,
            CollabStatus.IN_PROGRESS,
        ]

    @classmethod
    def terminal_states(cls) -> list["CollabStatus"]:
        return [CollabStatus.ENDED, CollabStatus.CANCELLED]


class StreamPhase(str, Enum):
    """Normalized classification of a slot's stream."""

    WAITING = "waiting"
    LIVE = "live"
    ENDED = "ended"
    NO_DATA = "no_data"

    def __str__(self) -> str:
        return self.value


class CollabType(str, Enum):
    NORMAL_STREAM = "normal_stream"
    GAMING = "gaming"
    COSPLAY = "cosplay"
    KARAOKE_TALKSHOW = "karaoke_talkshow"

    def __str__(self) -> str:
        return self.value


__all__ = ["CollabStatus", "CollabType", "StreamPhase"]
