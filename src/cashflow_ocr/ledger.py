"""Append-only category logs plus the day-bucketed totals summary."""

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse

from .config import AppConfig, DEFAULT_TIMEZONE
from .models import (
    ClassificationRecord, DayTotals, FACTURA, TRANSACCION, TRACKED_CATEGORIES,
)
from .storage import DocumentStore, JsonDocumentStore, RecordLog, CsvRecordLog

logger = logging.getLogger(__name__)


def day_key(timestamp: datetime, timezone_id: str = DEFAULT_TIMEZONE) -> str:
    """
    Calendar date of a timestamp as seen in the given timezone.

    Naive timestamps are taken to be UTC, never host-local time.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=dt_timezone.utc)
    return timestamp.astimezone(ZoneInfo(timezone_id)).strftime('%Y-%m-%d')


class LedgerStore:
    """Records classified documents and keeps running totals per day."""

    def __init__(self,
                 totals_store: DocumentStore,
                 category_logs: Dict[str, RecordLog],
                 unclassified_log: RecordLog,
                 timezone: str = DEFAULT_TIMEZONE):
        """
        Args:
            totals_store: Document holding {"timezone", "days": {DayKey: totals}}
            category_logs: One log per tracked category
            unclassified_log: Log for UNKNOWN outcomes
            timezone: Operational timezone used for DayKeys
        """
        missing = [c for c in TRACKED_CATEGORIES if c not in category_logs]
        if missing:
            raise ValueError(f"No log configured for {missing}")

        self.totals_store = totals_store
        self.category_logs = category_logs
        self.unclassified_log = unclassified_log
        self.timezone = timezone

    @classmethod
    def from_config(cls, config: AppConfig) -> "LedgerStore":
        """File-backed ledger under the configured data directory."""
        timezone = config.timezone
        return cls(
            totals_store=JsonDocumentStore(
                config.totals_path,
                default_factory=lambda: {'timezone': timezone, 'days': {}},
            ),
            category_logs={
                FACTURA: CsvRecordLog(config.facturas_log),
                TRANSACCION: CsvRecordLog(config.transacciones_log),
            },
            unclassified_log=CsvRecordLog(config.unclassified_log),
            timezone=timezone,
        )

    def get_day_key(self, timestamp: datetime) -> str:
        return day_key(timestamp, self.timezone)

    def record_event(self, record: ClassificationRecord) -> DayTotals:
        """
        Log a classified document, then add its amount to the day's totals.

        The log append always happens first: if the process dies in between,
        the totals undercount and can be rebuilt from the logs.

        Returns:
            Updated totals for the record's day
        """
        if record.category not in self.category_logs:
            raise ValueError(f"Cannot record category {record.category} in the totals")

        self.category_logs[record.category].append(record.to_row())

        key = self.get_day_key(record.received_at)
        totals = self._load_totals()
        day = self._day_entry(totals, key)
        day.add(record.category, record.amount)
        totals['days'][key] = day.to_dict()
        self.totals_store.set(totals)

        logger.info(f"Recorded {record.category} {record.amount} COP for {key} "
                    f"(facturas={day.facturas_total}, transacciones={day.transacciones_total})")
        return day

    def record_unclassified(self, record: ClassificationRecord):
        """Log an UNKNOWN outcome for review. Totals are not touched."""
        self.unclassified_log.append(record.to_row())
        logger.info(f"Logged unclassified media {record.media_ref}: {record.notes}")

    def get_day_totals(self, key: str) -> DayTotals:
        """Totals for a day, zero if nothing was recorded yet. Does not write."""
        return self._day_entry(self._load_totals(), key)

    def all_totals(self) -> Dict[str, DayTotals]:
        totals = self._load_totals()
        return {key: self._day_entry(totals, key) for key in sorted(totals['days'])}

    def rebuild_totals(self) -> Dict[str, DayTotals]:
        """
        Recompute every day's totals from the category logs and persist them.

        The logs are the source of truth; use this after a crash between log
        append and totals update, or after a corrupted totals file was reset.
        """
        days: Dict[str, DayTotals] = {}
        skipped = 0

        for category, log in self.category_logs.items():
            for row in log.records():
                received_at = self._parse_timestamp(row.get('date_iso'))
                if received_at is None:
                    skipped += 1
                    continue

                value = row.get('value_cop') or ''
                amount = int(value) if value.strip().isdigit() else None

                key = self.get_day_key(received_at)
                days.setdefault(key, DayTotals()).add(category, amount)

        if skipped:
            logger.warning(f"Skipped {skipped} log rows with unreadable timestamps")

        self.totals_store.set({
            'timezone': self.timezone,
            'days': {key: days[key].to_dict() for key in sorted(days)},
        })
        logger.info(f"Rebuilt totals for {len(days)} days")
        return dict(sorted(days.items()))

    def _load_totals(self) -> Dict:
        totals = self.totals_store.get()
        if not isinstance(totals.get('days'), dict):
            totals['days'] = {}
        totals['timezone'] = self.timezone
        return totals

    def _day_entry(self, totals: Dict, key: str) -> DayTotals:
        """Totals for one day; a malformed entry counts as zero."""
        try:
            return DayTotals.from_dict(totals['days'].get(key, {}))
        except (AttributeError, TypeError, ValueError) as e:
            # The entry is replaced on the next write for this day
            logger.warning(f"Unreadable totals for {key} ({e}), starting from zero")
            return DayTotals()

    @staticmethod
    def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            return isoparse(value)
        except ValueError:
            return None
