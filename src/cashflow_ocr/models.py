"""Data models for classified media and the daily ledger."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Dict, Any, List

FACTURA = "FACTURA"
TRANSACCION = "TRANSACCION"
UNKNOWN = "UNKNOWN"
DUPLICATE = "DUPLICATE"

# Categories that carry an amount into the daily totals
TRACKED_CATEGORIES = (FACTURA, TRANSACCION)

CURRENCY = "COP"

LOG_HEADER = [
    'date_iso', 'source', 'sender', 'category',
    'value_cop', 'currency', 'notes', 'media_ref',
]


@dataclass(frozen=True)
class MediaRef:
    """Content fingerprint plus original filename of an inbound media file."""
    fingerprint: str
    filename: str

    def __str__(self) -> str:
        return f"{self.fingerprint}:{self.filename}"


@dataclass
class MediaMetadata:
    """Where a media item came from."""
    source: str = "unknown"
    sender: str = "unknown"
    received_at: Optional[datetime] = None
    message_id: Optional[str] = None


@dataclass(frozen=True)
class ClassificationRecord:
    """One row of a category log. Never modified after it is appended."""
    received_at: datetime
    source: str
    sender: str
    category: str
    amount: Optional[int]
    media_ref: str
    notes: str = ""
    currency: str = CURRENCY

    def to_row(self) -> List[str]:
        return [
            self.received_at.isoformat(),
            self.source,
            self.sender,
            self.category,
            '' if self.amount is None else str(self.amount),
            self.currency,
            self.notes,
            self.media_ref,
        ]


@dataclass
class DayTotals:
    """Accumulated amounts and event counts for one DayKey."""
    facturas_total: int = 0
    transacciones_total: int = 0
    unknown_total: int = 0
    counts: Dict[str, int] = field(default_factory=lambda: {
        'facturas': 0, 'transacciones': 0, 'unknown': 0
    })

    def add(self, category: str, amount: Optional[int]):
        """Add one event. Amounts are only ever added, never subtracted."""
        value = abs(amount) if amount else 0
        if category == FACTURA:
            self.facturas_total += value
            self.counts['facturas'] += 1
        elif category == TRANSACCION:
            self.transacciones_total += value
            self.counts['transacciones'] += 1
        else:
            self.unknown_total += value
            self.counts['unknown'] += 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DayTotals":
        counts = data.get('counts') or {}
        return cls(
            facturas_total=int(data.get('facturas_total', 0)),
            transacciones_total=int(data.get('transacciones_total', 0)),
            unknown_total=int(data.get('unknown_total', 0)),
            counts={
                'facturas': int(counts.get('facturas', 0)),
                'transacciones': int(counts.get('transacciones', 0)),
                'unknown': int(counts.get('unknown', 0)),
            },
        )


@dataclass
class PipelineResult:
    """Outcome of processing one media item."""
    category: str
    amount: Optional[int]
    media_ref: str
    day_key: Optional[str] = None
    day_totals: Optional[DayTotals] = None
    notification_text: Optional[str] = None
    first_seen_at: Optional[str] = None
    notes: str = ""
    message_id: Optional[str] = None

    @property
    def is_duplicate(self) -> bool:
        return self.category == DUPLICATE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dedup': self.is_duplicate,
            'category': self.category,
            'amount_cop': self.amount,
            'day_key': self.day_key,
            'totals': self.day_totals.to_dict() if self.day_totals else None,
            'notification_text': self.notification_text,
            'media_ref': self.media_ref,
            'first_seen_at': self.first_seen_at,
            'notes': self.notes,
            'message_id': self.message_id,
        }
