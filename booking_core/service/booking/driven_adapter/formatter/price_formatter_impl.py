from decimal import Decimal

from booking_core.service.booking.domain.value_object.price_quote import quantize_money


class PriceFormatterImpl:
    """Formats amounts as <symbol><grouped integer part><separator><cents>, e.g. '€1,234.50'"""

    def __init__(
        self,
        *,
        currency_symbol: str = '€',
        decimal_separator: str = '.',
        thousands_separator: str = ',',
    ) -> None:
        if decimal_separator == thousands_separator:
            raise ValueError('Decimal and thousands separators must differ')
        self._currency_symbol = currency_symbol
        self._decimal_separator = decimal_separator
        self._thousands_separator = thousands_separator

    def format(self, amount: Decimal) -> str:
        quantized = quantize_money(amount)
        sign = '-' if quantized < 0 else ''
        integer_part, cents = f'{abs(quantized):,.2f}'.split('.')
        grouped = integer_part.replace(',', self._thousands_separator)
        return f'{sign}{self._currency_symbol}{grouped}{self._decimal_separator}{cents}'
