from enum import StrEnum


class AggregateStatus(StrEnum):
    IDLE = 'idle'
    DIRTY = 'dirty'
    SUBMITTING = 'submitting'
    CONFLICTED = 'conflicted'
