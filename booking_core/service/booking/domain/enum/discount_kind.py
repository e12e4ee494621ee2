from enum import StrEnum


class DiscountKind(StrEnum):
    DATE_BASED = 'date_based'
    EARLY_BOOKING = 'early_booking'
    BUNDLE = 'bundle'
