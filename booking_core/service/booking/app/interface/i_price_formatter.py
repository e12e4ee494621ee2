from decimal import Decimal
from typing import Protocol


class IPriceFormatter(Protocol):
    def format(self, amount: Decimal) -> str:
        """Render an amount for display, e.g. '€1,234.50'"""
        ...
