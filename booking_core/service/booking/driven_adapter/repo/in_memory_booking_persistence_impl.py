"""
In-memory Booking Persistence Implementation

Keeps the append-only history of every booking and rebuilds snapshots by
replaying it. Acts as the remote authority: checks the baseline revision,
deduplicates a retried submission by fingerprint (the last one applied per
booking), commits the places taken or given back to the capacity ledger and
locks in line prices when a submission is accepted.
"""

from collections import Counter
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List

import uuid_utils

from booking_core.platform.exception.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    NotFoundError,
    TransientError,
)
from booking_core.platform.logging.loguru_io import Logger
from booking_core.service.booking.app.interface.i_booking_persistence import IBookingPersistence
from booking_core.service.booking.app.interface.i_capacity_ledger import ICapacityLedger
from booking_core.service.booking.app.interface.i_edit_log_codec import IEditLogCodec
from booking_core.service.booking.app.interface.i_pricing_oracle import IPricingOracle
from booking_core.service.booking.domain.aggregate.booking_snapshot import (
    BookingHistoryEntry,
    BookingSnapshot,
)
from booking_core.service.booking.domain.booking_fold import BookingState, derive_lines, fold
from booking_core.service.booking.domain.entity.money_transfer import MoneyTransfer
from booking_core.service.booking.domain.price_calculator import commit_line_prices
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef
from booking_core.service.booking.domain.value_object.booking_submission import (
    BookingSubmission,
)
from booking_core.service.booking.domain.value_object.scheduled_item import ScheduledItem


class InMemoryBookingPersistenceImpl(IBookingPersistence):
    def __init__(
        self,
        *,
        codec: IEditLogCodec,
        pricing_oracle: IPricingOracle,
        allow_uncancel_after_submit: bool = True,
        capacity_ledger: ICapacityLedger | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._codec = codec
        self._pricing_oracle = pricing_oracle
        self._capacity_ledger = capacity_ledger
        self._allow_uncancel_after_submit = allow_uncancel_after_submit
        self._clock = clock
        self._history: Dict[str, List[BookingHistoryEntry]] = {}
        # booking ref -> (fingerprint, revision) of the last applied submission
        self._last_applied: Dict[str, tuple[str, int]] = {}
        self._pending_failures: List[TransientError] = []
        self._fail_after_commit: List[TransientError] = []

    # ------------------------------------------------------------------ port

    @Logger.io
    async def load(self, *, booking_ref: BookingRef) -> BookingSnapshot | None:
        return self.snapshot_as_of(booking_ref=booking_ref, as_of=self._clock())

    @Logger.io
    async def submit(self, *, submission: BookingSubmission) -> BookingSnapshot:
        if self._pending_failures:
            raise self._pending_failures.pop(0)

        key = str(submission.booking_ref)
        last_applied = self._last_applied.get(key)
        if last_applied is not None and last_applied[0] == submission.fingerprint:
            Logger.base.info(
                f'[PERSISTENCE] Duplicate submission for {key} '
                f'(already applied at revision {last_applied[1]})'
            )
            return self._latest_snapshot(booking_ref=submission.booking_ref)

        history = self._history.get(key, [])
        current_revision = history[-1].revision if history else 0
        if current_revision != submission.baseline_revision:
            raise ConflictError(
                f'Booking {key} is at revision {current_revision}, '
                f'submission was made against revision {submission.baseline_revision}'
            )

        events = self._codec.decode(payload=submission.payload)
        current = self._snapshot_at_revision(
            booking_ref=submission.booking_ref, revision=current_revision
        )
        baseline = current.to_state() if current else BookingState.empty()
        state = fold(baseline, events)
        if (
            current is not None
            and current.cancelled
            and not state.cancelled
            and not self._allow_uncancel_after_submit
        ):
            raise BusinessRuleViolation('A confirmed cancellation cannot be undone')

        lines = commit_line_prices(
            derive_lines(state.attendances, committed=current.lines if current else ()),
            pricing_oracle=self._pricing_oracle,
        )
        if self._capacity_ledger is not None:
            changes = _place_changes(old=baseline, new=state)
            if changes:
                self._capacity_ledger.commit_places(changes=changes)

        entry = BookingHistoryEntry(
            revision=current_revision + 1,
            recorded_at=self._clock(),
            events=events,
            committed_lines=lines,
            comment=submission.comment,
        )
        self._history.setdefault(key, []).append(entry)
        self._last_applied[key] = (submission.fingerprint, entry.revision)
        Logger.base.info(f'[PERSISTENCE] Booking {key} committed at revision {entry.revision}')

        if self._fail_after_commit:
            # Commit happened but the reply is lost
            raise self._fail_after_commit.pop(0)

        return self._latest_snapshot(booking_ref=submission.booking_ref)

    # ------------------------------------------------------------------ back office

    def snapshot_as_of(self, *, booking_ref: BookingRef, as_of: datetime) -> BookingSnapshot | None:
        return BookingSnapshot.replay(
            booking_ref=booking_ref,
            history=self._history.get(str(booking_ref), ()),
            as_of=as_of,
        )

    @Logger.io
    def record_money_transfer(
        self,
        *,
        booking_ref: BookingRef,
        amount: Decimal,
        succeeded: bool = True,
        is_refund: bool = False,
    ) -> MoneyTransfer:
        """
        Record a payment or refund; bumps the booking revision

        Raises:
            NotFoundError: Unknown booking
        """
        key = str(booking_ref)
        history = self._history.get(key)
        if not history:
            raise NotFoundError(f'Booking {key} not found')

        now = self._clock()
        transfer = MoneyTransfer(
            transfer_id=str(uuid_utils.uuid7()),
            amount=amount,
            succeeded=succeeded,
            is_refund=is_refund,
            recorded_at=now,
        )
        history.append(
            BookingHistoryEntry(
                revision=history[-1].revision + 1,
                recorded_at=now,
                transfers=(transfer,),
            )
        )
        return transfer

    def history_of(self, *, booking_ref: BookingRef) -> tuple[BookingHistoryEntry, ...]:
        return tuple(self._history.get(str(booking_ref), ()))

    def fail_next_submit(self, error: TransientError | None = None) -> None:
        """Make the next submit raise before anything is committed"""
        self._pending_failures.append(error or TransientError('Persistence unavailable'))

    def fail_next_reply(self, error: TransientError | None = None) -> None:
        """Make the next submit commit, then raise as if the reply was lost"""
        self._fail_after_commit.append(error or TransientError('Connection reset'))

    def _latest_snapshot(self, *, booking_ref: BookingRef) -> BookingSnapshot:
        history = self._history.get(str(booking_ref))
        snapshot = (
            self._snapshot_at_revision(booking_ref=booking_ref, revision=history[-1].revision)
            if history
            else None
        )
        if snapshot is None:
            raise NotFoundError(f'Booking {booking_ref} not found')
        return snapshot

    def _snapshot_at_revision(
        self, *, booking_ref: BookingRef, revision: int
    ) -> BookingSnapshot | None:
        entries = [e for e in self._history.get(str(booking_ref), ()) if e.revision <= revision]
        return BookingSnapshot.replay(
            booking_ref=booking_ref,
            history=entries,
            as_of=datetime.max.replace(tzinfo=timezone.utc),
        )


def _places_held(state: BookingState) -> Counter[ScheduledItem]:
    if state.cancelled:
        return Counter()
    held: Counter[ScheduledItem] = Counter()
    for attendance in state.attendances:
        held[attendance.item] += attendance.quantity
    return held


def _place_changes(*, old: BookingState, new: BookingState) -> dict[ScheduledItem, int]:
    before, after = _places_held(old), _places_held(new)
    changes = {item: after[item] - before[item] for item in before.keys() | after.keys()}
    return {item: delta for item, delta in changes.items() if delta}
