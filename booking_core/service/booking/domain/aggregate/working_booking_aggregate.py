"""
Working Booking Aggregate - Aggregate Root for editing one booking

[DDD Design Principles]
- Owns one optional confirmed snapshot and the ordered log of local edits
- Current state is always fold(snapshot, edit log); nothing else is mutable
- Every state-changing call bumps `version`; derived state is memoized per version

[Business Invariants]
- has_changes <=> the edit log is non-empty
- An edit is appended only after its input was validated (all-or-nothing)
- A failed or cancelled submission never drops local edits
- A conflicted aggregate is terminal and must be discarded
"""

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, List, Self

import anyio
import attrs

from booking_core.platform.config.core_setting import Settings
from booking_core.platform.exception.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    CustomBaseError,
    DomainError,
    TransientError,
    ValidationError,
)
from booking_core.platform.logging.loguru_io import Logger
from booking_core.service.booking.domain.aggregate.booking_snapshot import (
    BookingSnapshot,
    diff_attendances,
)
from booking_core.service.booking.domain.booking_fold import BookingState, derive_lines, fold
from booking_core.service.booking.domain.domain_event.booking_edit_event import (
    AddAttendances,
    AddRequest,
    BookingEditEvent,
    Cancel,
    RemoveAttendances,
    RemoveSingleAttendance,
    Uncancel,
)
from booking_core.service.booking.domain.entity.attendance import Attendance, AttendanceDraft
from booking_core.service.booking.domain.entity.booking_line import BookingLine
from booking_core.service.booking.domain.enum.aggregate_status import AggregateStatus
from booking_core.service.booking.domain.price_calculator import (
    DepositPolicy,
    PriceSummary,
    compute_price_summary,
)
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef
from booking_core.service.booking.domain.value_object.booking_submission import (
    BookingSubmission,
)
from booking_core.service.booking.domain.value_object.scheduled_item import (
    DateRange,
    ItemSelection,
    ScheduledItem,
)


if TYPE_CHECKING:
    from booking_core.service.booking.app.interface.i_booking_persistence import (
        IBookingPersistence,
    )
    from booking_core.service.booking.app.interface.i_edit_log_codec import IEditLogCodec
    from booking_core.service.booking.app.interface.i_pricing_oracle import IPricingOracle


VersionListener = Callable[[int], None]


@attrs.define(frozen=True)
class BookingPolicy:
    deposit_policy: DepositPolicy
    allow_uncancel_after_submit: bool = True
    submit_timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        return cls(
            deposit_policy=DepositPolicy(
                fraction=settings.DEPOSIT_POLICY_FRACTION,
                minimum_amount=settings.MIN_DEPOSIT_AMOUNT,
            ),
            allow_uncancel_after_submit=settings.ALLOW_UNCANCEL_AFTER_SUBMIT,
            submit_timeout_seconds=settings.SUBMIT_TIMEOUT_SECONDS,
        )


@attrs.define(frozen=True)
class WorkingBookingState:
    """fold(snapshot, edit log) plus what is derived from it"""

    attendances: tuple[Attendance, ...]
    lines: tuple[BookingLine, ...]
    cancelled: bool
    requests: tuple[str, ...]
    violations: tuple[str, ...] = ()

    @property
    def active_lines(self) -> tuple[BookingLine, ...]:
        return () if self.cancelled else self.lines


@attrs.define
class DerivedStateCache:
    """Last computed state, valid only while the aggregate is at `version`"""

    version: int
    state: WorkingBookingState
    price_summary: PriceSummary | None = None


@attrs.define
class WorkingBookingAggregate:
    _booking_ref: BookingRef
    _pricing_oracle: 'IPricingOracle' = attrs.field(repr=False)
    _persistence: 'IBookingPersistence' = attrs.field(repr=False)
    _codec: 'IEditLogCodec' = attrs.field(repr=False)
    _policy: BookingPolicy = attrs.field(repr=False)
    _snapshot: BookingSnapshot | None = None

    _edit_log: List[BookingEditEvent] = attrs.field(factory=list, init=False)
    _version: int = attrs.field(default=0, init=False)
    _cache: DerivedStateCache | None = attrs.field(default=None, init=False, repr=False)
    _in_flight: BookingSubmission | None = attrs.field(default=None, init=False, repr=False)
    _conflict: ConflictError | None = attrs.field(default=None, init=False, repr=False)
    _log_epoch: int = attrs.field(default=0, init=False, repr=False)
    _version_listeners: List[VersionListener] = attrs.field(
        factory=list, init=False, repr=False
    )

    # ------------------------------------------------------------------ factories

    @classmethod
    def for_snapshot(
        cls,
        *,
        snapshot: BookingSnapshot,
        pricing_oracle: 'IPricingOracle',
        persistence: 'IBookingPersistence',
        codec: 'IEditLogCodec',
        policy: BookingPolicy,
    ) -> Self:
        return cls(
            booking_ref=snapshot.booking_ref,
            pricing_oracle=pricing_oracle,
            persistence=persistence,
            codec=codec,
            policy=policy,
            snapshot=snapshot,
        )

    @classmethod
    def for_new_booking(
        cls,
        *,
        pricing_oracle: 'IPricingOracle',
        persistence: 'IBookingPersistence',
        codec: 'IEditLogCodec',
        policy: BookingPolicy,
    ) -> Self:
        return cls(
            booking_ref=BookingRef.generate(),
            pricing_oracle=pricing_oracle,
            persistence=persistence,
            codec=codec,
            policy=policy,
        )

    # ------------------------------------------------------------------ read side

    @property
    def booking_ref(self) -> BookingRef:
        return self._booking_ref

    @property
    def snapshot(self) -> BookingSnapshot | None:
        return self._snapshot

    @property
    def policy(self) -> BookingPolicy:
        return self._policy

    @property
    def version(self) -> int:
        return self._version

    @property
    def edit_log(self) -> tuple[BookingEditEvent, ...]:
        return tuple(self._edit_log)

    @property
    def has_changes(self) -> bool:
        return bool(self._edit_log)

    @property
    def baseline_revision(self) -> int:
        return self._snapshot.revision if self._snapshot else 0

    @property
    def status(self) -> AggregateStatus:
        if self._conflict is not None:
            return AggregateStatus.CONFLICTED
        if self._in_flight is not None:
            return AggregateStatus.SUBMITTING
        return AggregateStatus.DIRTY if self._edit_log else AggregateStatus.IDLE

    def derived_state(self) -> WorkingBookingState:
        return self._current_cache().state

    def price_summary(self) -> PriceSummary:
        cache = self._current_cache()
        if cache.price_summary is None:
            snapshot = self._snapshot
            cache.price_summary = compute_price_summary(
                lines=cache.state.lines,
                cancelled=cache.state.cancelled,
                baseline_lines=snapshot.lines if snapshot else (),
                baseline_cancelled=snapshot.cancelled if snapshot else False,
                transfers=snapshot.transfers if snapshot else (),
                pricing_oracle=self._pricing_oracle,
                deposit_policy=self._policy.deposit_policy,
            )
        return cache.price_summary

    def attendances_added(self, *, exclude_earlier_edits: bool) -> tuple[Attendance, ...]:
        baseline = self._snapshot.attendances if self._snapshot else ()
        return diff_attendances(
            self.derived_state().attendances,
            baseline,
            exclude_earlier_edits=exclude_earlier_edits,
        )

    def attendances_removed(self, *, exclude_earlier_edits: bool) -> tuple[Attendance, ...]:
        baseline = self._snapshot.attendances if self._snapshot else ()
        return diff_attendances(
            baseline,
            self.derived_state().attendances,
            exclude_earlier_edits=exclude_earlier_edits,
        )

    def check_business_rules(self) -> None:
        """
        Raises:
            BusinessRuleViolation: When the folded state breaks a booking rule
        """
        violations = self.derived_state().violations
        if violations:
            raise BusinessRuleViolation('; '.join(violations), violations=violations)

    def is_submittable(self) -> bool:
        return self._submittability_problem() is None

    def check_submittable(self) -> None:
        """
        Raises:
            ValidationError: No lines, or total below the minimum deposit
            BusinessRuleViolation: When the folded state breaks a booking rule
        """
        if (problem := self._submittability_problem()) is not None:
            raise problem

    # ------------------------------------------------------------------ listeners

    def add_version_listener(self, listener: VersionListener) -> None:
        self._version_listeners.append(listener)

    def remove_version_listener(self, listener: VersionListener) -> None:
        if listener in self._version_listeners:
            self._version_listeners.remove(listener)

    # ------------------------------------------------------------------ mutations

    @Logger.io
    def book_scheduled_items(
        self, *, items: Sequence[ItemSelection], add_only: bool = False
    ) -> None:
        """
        Book occurrences

        With add_only=False an occurrence that is already attended gets the new
        quantity; with add_only=True it is left as it is.

        Raises:
            ValidationError: Empty selection, bad quantity, unknown or unpriced occurrence
        """
        self._ensure_not_conflicted()
        if not items:
            raise ValidationError('No items to book')

        drafts = []
        for selection in items:
            if selection.quantity < 1:
                raise ValidationError(f'Quantity must be at least 1 for {selection.item.label}')
            if self._pricing_oracle.find_occurrence(item=selection.item) is None:
                raise ValidationError(f'Unknown occurrence {selection.item.label}')
            if not self._is_priceable(selection):
                raise ValidationError(f'No rate available for {selection.item.label}')
            drafts.append(AttendanceDraft.new(item=selection.item, quantity=selection.quantity))

        self._append(AddAttendances(items=tuple(drafts), add_only=add_only))

    @Logger.io
    def unbook_scheduled_items(self, *, items: Sequence[ScheduledItem]) -> None:
        self._ensure_not_conflicted()
        if not items:
            raise ValidationError('No items to unbook')
        self._append(RemoveAttendances(items=tuple(items)))

    @Logger.io
    def remove_attendance(self, *, attendance: Attendance) -> None:
        self._ensure_not_conflicted()
        self._append(RemoveSingleAttendance(attendance_id=attendance.attendance_id))

    @Logger.io
    def cancel_booking(self) -> None:
        self._ensure_not_conflicted()
        self._append(Cancel())

    @Logger.io
    def uncancel_booking(self) -> None:
        self._ensure_not_conflicted()
        self._append(Uncancel())

    @Logger.io
    def add_request(self, *, text: str) -> None:
        self._ensure_not_conflicted()
        if not text or not text.strip():
            raise ValidationError('Request text cannot be empty')
        self._append(AddRequest(text=text.strip()))

    @Logger.io
    def cancel_changes(self) -> None:
        """Drop every local edit; derived state returns to the snapshot"""
        self._ensure_not_conflicted()
        self._edit_log.clear()
        self._log_epoch += 1
        self._bump_version()

    @Logger.io
    def start_new_booking(self) -> None:
        """Detach from the snapshot and start composing a brand-new booking"""
        self._ensure_not_conflicted()
        self._edit_log.clear()
        self._log_epoch += 1
        self._snapshot = None
        self._booking_ref = BookingRef.generate()
        self._bump_version()

    # ------------------------------------------------------------------ submission

    @Logger.io
    async def submit_changes(self, *, comment: str | None = None) -> BookingSnapshot:
        """
        Send the edit log to the persistence collaborator as one unit

        Raises:
            ValidationError: Nothing to submit, or the state is not submittable
            BusinessRuleViolation: The folded state breaks a booking rule
            DomainError: Another submission is still in flight
            ConflictError: The server baseline moved; this aggregate is now terminal
            TransientError: Network failure or timeout; the edit log is intact
        """
        self._ensure_not_conflicted()
        if self._in_flight is not None:
            raise DomainError('A submission is already in flight')
        if not self._edit_log:
            raise ValidationError('No changes to submit')
        self.check_submittable()

        submission = self._build_submission(comment=comment)
        epoch = self._log_epoch
        self._in_flight = submission
        try:
            with anyio.fail_after(self._policy.submit_timeout_seconds):
                snapshot = await self._persistence.submit(submission=submission)
        except TimeoutError as e:
            raise TransientError('Submission timed out') from e
        except ConflictError as e:
            self._conflict = e
            raise
        finally:
            self._in_flight = None

        self._accept_confirmed_snapshot(snapshot=snapshot, submission=submission, epoch=epoch)
        return snapshot

    # ------------------------------------------------------------------ internals

    def _ensure_not_conflicted(self) -> None:
        if self._conflict is not None:
            raise ConflictError(
                f'Booking {self._booking_ref} changed on the server; reload it to continue'
            )

    def _append(self, event: BookingEditEvent) -> None:
        self._edit_log.append(event)
        self._bump_version()

    def _bump_version(self) -> None:
        self._version += 1
        for listener in list(self._version_listeners):
            try:
                listener(self._version)
            except Exception as e:
                # Listeners never roll back an applied change
                Logger.base.exception(f'[VERSION] Listener failed at v{self._version}: {e}')

    def _is_priceable(self, selection: ItemSelection) -> bool:
        item = selection.item
        try:
            self._pricing_oracle.price_of(
                item_id=item.item_id,
                site_id=item.site_id,
                date_range=DateRange.single(item.date),
                quantity=selection.quantity,
            )
        except LookupError:
            return False
        return True

    def _current_cache(self) -> DerivedStateCache:
        if self._cache is None or self._cache.version != self._version:
            self._cache = DerivedStateCache(version=self._version, state=self._derive_state())
        return self._cache

    def _derive_state(self) -> WorkingBookingState:
        snapshot = self._snapshot
        baseline = snapshot.to_state() if snapshot else BookingState.empty()
        state = fold(baseline, self._edit_log)
        return WorkingBookingState(
            attendances=state.attendances,
            lines=derive_lines(state.attendances, committed=snapshot.lines if snapshot else ()),
            cancelled=state.cancelled,
            requests=state.requests,
            violations=self._find_violations(state),
        )

    def _find_violations(self, state: BookingState) -> tuple[str, ...]:
        snapshot = self._snapshot
        violations = []

        committed_quantities = (
            {a.key: a.quantity for a in snapshot.attendances} if snapshot else {}
        )
        for attendance in state.attendances:
            extra_places = attendance.quantity - committed_quantities.get(attendance.key, 0)
            if extra_places <= 0:
                continue
            occurrence = self._pricing_oracle.find_occurrence(item=attendance.item)
            if occurrence is None:
                violations.append(f'{attendance.item.label} is no longer offered')
            elif (
                occurrence.remaining_capacity is not None
                and extra_places > occurrence.remaining_capacity
            ):
                violations.append(
                    f'{attendance.item.label} has only '
                    f'{occurrence.remaining_capacity} place(s) left'
                )

        if (
            snapshot is not None
            and snapshot.cancelled
            and not state.cancelled
            and not self._policy.allow_uncancel_after_submit
        ):
            violations.append('A confirmed cancellation cannot be undone')

        return tuple(violations)

    def _submittability_problem(self) -> CustomBaseError | None:
        state = self.derived_state()
        if not state.lines:
            return ValidationError('Booking has no items')
        if state.violations:
            return BusinessRuleViolation('; '.join(state.violations), violations=state.violations)
        minimum = self._policy.deposit_policy.minimum_amount
        if not state.cancelled and self.price_summary().total < minimum:
            return ValidationError(f'Booking total is below the minimum deposit of {minimum}')
        return None

    def _build_submission(self, *, comment: str | None) -> BookingSubmission:
        payload = self._codec.encode(events=self._edit_log)
        return BookingSubmission(
            booking_ref=self._booking_ref,
            baseline_revision=self.baseline_revision,
            payload=payload,
            event_count=len(self._edit_log),
            fingerprint=self._codec.fingerprint(
                booking_ref=self._booking_ref,
                baseline_revision=self.baseline_revision,
                payload=payload,
            ),
            comment=comment,
        )

    def _accept_confirmed_snapshot(
        self, *, snapshot: BookingSnapshot, submission: BookingSubmission, epoch: int
    ) -> None:
        if self._booking_ref != submission.booking_ref:
            Logger.base.warning(
                f'[SUBMIT] Booking {submission.booking_ref} confirmed after a new booking '
                f'was started; leaving the new booking untouched'
            )
            return

        self._snapshot = snapshot
        if self._log_epoch == epoch:
            # Edits appended while the submission was in flight stay pending
            del self._edit_log[: submission.event_count]
        self._bump_version()
        Logger.base.info(
            f'[SUBMIT] Booking {snapshot.booking_ref} confirmed at revision {snapshot.revision}'
        )
