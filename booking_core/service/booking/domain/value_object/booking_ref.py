from typing import Self

import attrs
import uuid_utils


@attrs.define(frozen=True)
class BookingRef:
    """Reference of a booking at the persistence collaborator."""

    value: str

    @classmethod
    def generate(cls) -> Self:
        return cls(value=str(uuid_utils.uuid7()))

    def __str__(self) -> str:
        return self.value
