"""Collab state machine: stream phases in, next collab status out."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel

from collabmatch.schemas import CollabStatus, CollabTotals, StreamPhase, StreamSnapshot

from .collab_models import CollabResponse, CollabUpdate
from .slot_allocator import occupied_count


@dataclass(frozen=True)
class SlotReading:
    """Resolved stream phase of one slot for a single evaluation pass."""

    phase: StreamPhase
    snapshot: StreamSnapshot | None = None


@dataclass(frozen=True)
class EvaluationContext:
    partners: int
    max_partners: int
    phases: tuple[StreamPhase, ...]

    @property
    def has_data(self) -> bool:
        return any(phase != StreamPhase.NO_DATA for phase in self.phases)

    @property
    def all_ended(self) -> bool:
        with_data = [phase for phase in self.phases if phase != StreamPhase.NO_DATA]
        return bool(with_data) and all(phase == StreamPhase.ENDED for phase in with_data)

    @property
    def any_live(self) -> bool:
        return StreamPhase.LIVE in self.phases

    @property
    def any_waiting(self) -> bool:
        return StreamPhase.WAITING in self.phases


@dataclass(frozen=True)
class StatusRule:
    name: str
    target: CollabStatus
    applies: Callable[[EvaluationContext], bool]


class CollabTransition(BaseModel):
    """Outcome of one evaluation. `applied` is False when no rule matched."""

    status: CollabStatus
    previous_status: CollabStatus
    applied: bool
    rule: str | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    last_status_check: datetime | None = None
    totals: CollabTotals | None = None

    @property
    def status_changed(self) -> bool:
        return self.status != self.previous_status

    def to_update(self) -> CollabUpdate:
        if not self.applied:
            return CollabUpdate()

        update = CollabUpdate(
            status=self.status,
            started_at=self.started_at,
            last_status_check=self.last_status_check,
        )
        if self.ended_at is not None:
            update.ended_at = self.ended_at
        if self.totals is not None:
            update.totals = self.totals
        return update


class CollabStateMachine:
    """Priority-ordered decision table for collab status.

    Rules are evaluated top to bottom and the first match wins:

    1. cancel_unmatched: no partner and a stream went live, or every stream with
       data has ended -> CANCELLED. An unmatched collab whose stream ran is a
       failed collab rather than a finished one, so this outranks rule 2.
    2. all_ended: every stream with data has ended -> ENDED, totals written.
       Checked before the live/waiting rules so that finished collabs stay finished.
    3. live_with_partner: any stream live and at least one partner -> IN_PROGRESS.
       Outranks the waiting rules: one live stream starts the collab.
    4. waiting_full: any stream waiting and every partner slot filled -> SETTING_UP
    5. waiting_open: any stream waiting and a partner slot free -> OPEN

    No match leaves the status unchanged. Slots without a stream reference, and
    slots whose lookup failed, are NO_DATA and never count as ended.

    CANCELLED and ENDED are terminal: evaluation returns them untouched.
    """

    RULES: tuple[StatusRule, ...] = (
        StatusRule(
            "cancel_unmatched",
            CollabStatus.CANCELLED,
            lambda ctx: ctx.partners == 0 and (ctx.any_live or ctx.all_ended),
        ),
        StatusRule(
            "all_ended",
            CollabStatus.ENDED,
            lambda ctx: ctx.all_ended,
        ),
        StatusRule(
            "live_with_partner",
            CollabStatus.IN_PROGRESS,
            lambda ctx: ctx.any_live and ctx.partners >= 1,
        ),
        StatusRule(
            "waiting_full",
            CollabStatus.SETTING_UP,
            lambda ctx: ctx.any_waiting and ctx.partners == ctx.max_partners,
        ),
        StatusRule(
            "waiting_open",
            CollabStatus.OPEN,
            lambda ctx: ctx.any_waiting and ctx.partners < ctx.max_partners,
        ),
    )

    TERMINAL_STATES: set[CollabStatus] = {CollabStatus.ENDED, CollabStatus.CANCELLED}

    @classmethod
    def is_terminal(cls, status: CollabStatus) -> bool:
        """Check if a status is terminal (no further transitions allowed)."""
        return status in cls.TERMINAL_STATES

    @classmethod
    def build_context(
        cls,
        collab: CollabResponse,
        readings: Mapping[int, SlotReading],
    ) -> EvaluationContext:
        phases = []
        for slot in collab.occupied_slots:
            reading = readings.get(slot.index) if slot.has_stream else None
            phases.append(reading.phase if reading else StreamPhase.NO_DATA)

        return EvaluationContext(
            partners=occupied_count(collab),
            max_partners=collab.max_partners,
            phases=tuple(phases),
        )

    @classmethod
    def match_rule(cls, ctx: EvaluationContext) -> StatusRule | None:
        for rule in cls.RULES:
            if rule.applies(ctx):
                return rule
        return None

    @classmethod
    def _ended_totals(
        cls,
        collab: CollabResponse,
        readings: Mapping[int, SlotReading],
    ) -> CollabTotals:
        totals = CollabTotals()
        for slot in collab.occupied_slots:
            reading = readings.get(slot.index)
            if reading is None or reading.phase != StreamPhase.ENDED or reading.snapshot is None:
                continue
            totals.views += reading.snapshot.view_count
            totals.likes += reading.snapshot.like_count
            totals.comments += reading.snapshot.comment_count
        return totals

    @classmethod
    def evaluate(
        cls,
        collab: CollabResponse,
        readings: Mapping[int, SlotReading],
        now: datetime,
    ) -> CollabTransition:
        """Compute the next status of `collab` from its slots' stream readings.

        Args:
            collab: Current collab view
            readings: Slot index -> reading, for occupied slots with a stream
            now: Evaluation time, used for every timestamp written

        Returns:
            CollabTransition. Pure: the same inputs always give the same output.
        """
        unchanged = CollabTransition(
            status=collab.status,
            previous_status=collab.status,
            applied=False,
            started_at=collab.started_at,
            ended_at=collab.ended_at,
            last_status_check=collab.last_status_check,
        )

        if cls.is_terminal(collab.status):
            return unchanged

        rule = cls.match_rule(cls.build_context(collab, readings))
        if rule is None:
            return unchanged

        transition = CollabTransition(
            status=rule.target,
            previous_status=collab.status,
            applied=True,
            rule=rule.name,
            started_at=collab.started_at,
            last_status_check=now,
        )

        if rule.target == CollabStatus.IN_PROGRESS:
            transition.started_at = collab.started_at or now
        elif rule.target == CollabStatus.ENDED:
            transition.ended_at = now
            transition.totals = cls._ended_totals(collab, readings)
        elif rule.target == CollabStatus.CANCELLED:
            transition.ended_at = now

        return transition
