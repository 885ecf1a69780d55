"""COP amount parsing with thousands/decimal separator disambiguation."""

import re
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, List, Sequence

from .base import BaseParser, ParseResult

logger = logging.getLogger(__name__)

# integer part: grouped digits (1.234.567 / 1,234,567) or a plain run of digits,
# then an optional two-digit fractional part
AMOUNT_TOKEN = re.compile(
    r'(?P<integer>[0-9]{1,3}(?:[.,][0-9]{3})+|[0-9]+)(?P<fraction>[.,][0-9]{2})?'
)

# Candidates for the "largest amount in the document" fallback. Short bare
# numbers (days, quantities) are ignored.
AMOUNT_CANDIDATE = re.compile(
    r'\$?\s*(?:[0-9]{1,3}(?:[.,][0-9]{3})+|[0-9]{4,})(?:[.,][0-9]{2})?'
)

CURRENCY_MARKERS = ('COP', '$')


def format_cop(amount: int) -> str:
    """Format an amount the way Colombian documents print it: 1.234.567"""
    return f"{amount:,}".replace(',', '.')


class AmountParser(BaseParser):
    """Parse positive integer COP amounts out of OCR text."""

    def parse(self, fragment: str) -> Optional[int]:
        """
        Parse the first amount found in a text fragment.

        If both '.' and ',' appear in the number, the one occurring last is the
        decimal separator. If only one kind appears it is thousands grouping and
        any two-digit tail is dropped.

        Args:
            fragment: Text such as "$ 45.000" or "1.234,56 COP"

        Returns:
            Amount rounded to the nearest peso, or None
        """
        if not fragment:
            return None

        text = str(fragment).upper()
        for marker in CURRENCY_MARKERS:
            text = text.replace(marker, '')
        text = re.sub(r'\s+', ' ', text)

        match = AMOUNT_TOKEN.search(text)
        if not match:
            return None

        return self._to_amount(match.group('integer'), match.group('fraction'))

    def parse_max(self, text: str) -> Optional[int]:
        """Return the largest amount that parses anywhere in the text."""
        amounts: List[int] = []
        for match in AMOUNT_CANDIDATE.finditer((text or '').upper()):
            amount = self.parse(match.group())
            if amount:
                amounts.append(amount)

        if not amounts:
            return None

        self.logger.debug(f"Largest of {len(amounts)} candidate amounts: {max(amounts)}")
        return max(amounts)

    def extract(self, text: str, patterns: Sequence) -> Optional[ParseResult]:
        """
        Try labelled patterns in priority order.

        Args:
            text: Full document text
            patterns: AmountPattern objects, highest priority first

        Returns:
            ParseResult for the first pattern whose fragment parses, or None
        """
        upper = (text or '').upper()
        for pattern in patterns:
            match = pattern.regex.search(upper)
            if not match:
                continue

            fragment = (match.groups()[-1] if match.groups() else match.group()) or ''
            amount = self.parse(fragment)
            if amount:
                result = ParseResult(
                    value=amount,
                    source_text=match.group().strip()[:50],
                    metadata={'pattern': pattern.label},
                )
                self._log_result(result)
                return result

            self.logger.debug(f"Pattern {pattern.label} matched '{fragment.strip()}' but no amount parsed")

        return None

    def _to_amount(self, integer: str, fraction: Optional[str]) -> Optional[int]:
        token = integer + (fraction or '')
        last_dot = token.rfind('.')
        last_comma = token.rfind(',')

        if last_dot != -1 and last_comma != -1:
            decimal_sep = '.' if last_dot > last_comma else ','
            thousands_sep = ',' if decimal_sep == '.' else '.'
            normalized = token.replace(thousands_sep, '').replace(decimal_sep, '.')
        else:
            normalized = integer.replace('.', '').replace(',', '')

        try:
            value = Decimal(normalized)
        except InvalidOperation:
            self.logger.debug(f"Ambiguous amount token '{token}'")
            return None

        if not value.is_finite():
            return None

        amount = int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
        if amount <= 0:
            return None
        return amount
