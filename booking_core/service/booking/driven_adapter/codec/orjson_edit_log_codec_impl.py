"""
Edit Log Codec Implementation (orjson)

Wire format:
    {"schema": 1, "events": [{"type": "add_attendances", ...}, ...]}

Dates travel as ISO strings, events keep their append order.
"""

from collections.abc import Sequence
from datetime import date
import hashlib
from typing import Any, Callable

import attrs
import orjson

from booking_core.service.booking.app.interface.i_edit_log_codec import IEditLogCodec
from booking_core.service.booking.domain.domain_event.booking_edit_event import (
    AddAttendances,
    AddRequest,
    BookingEditEvent,
    Cancel,
    RemoveAttendances,
    RemoveSingleAttendance,
    Uncancel,
)
from booking_core.service.booking.domain.entity.attendance import AttendanceDraft
from booking_core.service.booking.domain.value_object.booking_ref import BookingRef
from booking_core.service.booking.domain.value_object.scheduled_item import ScheduledItem


SCHEMA_VERSION = 1


def _scheduled_item_from_wire(raw: dict[str, Any]) -> ScheduledItem:
    return ScheduledItem(
        item_id=raw['item_id'],
        site_id=raw['site_id'],
        date=date.fromisoformat(raw['date']),
    )


def _draft_from_wire(raw: dict[str, Any]) -> AttendanceDraft:
    return AttendanceDraft(
        attendance_id=raw['attendance_id'],
        item=_scheduled_item_from_wire(raw['item']),
        quantity=int(raw['quantity']),
    )


_DECODERS: dict[str, Callable[[dict[str, Any]], BookingEditEvent]] = {
    AddAttendances.type: lambda raw: AddAttendances(
        items=tuple(_draft_from_wire(item) for item in raw['items']),
        add_only=bool(raw.get('add_only', False)),
    ),
    RemoveAttendances.type: lambda raw: RemoveAttendances(
        items=tuple(_scheduled_item_from_wire(item) for item in raw['items'])
    ),
    RemoveSingleAttendance.type: lambda raw: RemoveSingleAttendance(
        attendance_id=raw['attendance_id']
    ),
    Cancel.type: lambda raw: Cancel(),
    Uncancel.type: lambda raw: Uncancel(),
    AddRequest.type: lambda raw: AddRequest(text=raw['text']),
}


class OrjsonEditLogCodecImpl(IEditLogCodec):
    def encode(self, *, events: Sequence[BookingEditEvent]) -> bytes:
        return orjson.dumps(
            {
                'schema': SCHEMA_VERSION,
                'events': [self._event_to_wire(event) for event in events],
            },
            option=orjson.OPT_SORT_KEYS,
        )

    def decode(self, *, payload: bytes) -> tuple[BookingEditEvent, ...]:
        try:
            envelope = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            raise ValueError(f'Malformed edit log payload: {e}') from e

        if not isinstance(envelope, dict) or envelope.get('schema') != SCHEMA_VERSION:
            raise ValueError('Unsupported edit log schema')

        events = []
        for raw in envelope.get('events', []):
            decoder = _DECODERS.get(raw.get('type'))
            if decoder is None:
                raise ValueError(f'Unknown edit event type: {raw.get("type")!r}')
            try:
                events.append(decoder(raw))
            except (KeyError, TypeError) as e:
                raise ValueError(f'Malformed {raw["type"]} event: {e}') from e
        return tuple(events)

    def fingerprint(
        self, *, booking_ref: BookingRef, baseline_revision: int, payload: bytes
    ) -> str:
        digest = hashlib.sha256()
        digest.update(str(booking_ref).encode())
        digest.update(b'\x00')
        digest.update(str(baseline_revision).encode())
        digest.update(b'\x00')
        digest.update(payload)
        return digest.hexdigest()

    @staticmethod
    def _event_to_wire(event: BookingEditEvent) -> dict[str, Any]:
        # orjson serializes date natively (ISO 8601)
        return {'type': event.type, **attrs.asdict(event)}
