"""Notification text and the pending-outbox sink."""

import logging
import re
import time
from pathlib import Path
from typing import Optional

from .models import DayTotals, UNKNOWN, CURRENCY
from .parsers import format_cop

logger = logging.getLogger(__name__)

NOT_IDENTIFIED = "no identificado"


def format_amount(amount: Optional[int]) -> str:
    if amount is None:
        return NOT_IDENTIFIED
    return f"{format_cop(amount)} {CURRENCY}"


def build_notification(category: str,
                       amount: Optional[int],
                       day_key: str,
                       totals: DayTotals,
                       sender: str,
                       media_ref: str) -> str:
    """Multi-line message the operator receives for every processed item."""
    label = "NO CLASIFICADA" if category == UNKNOWN else category
    return "\n".join([
        f"{label} detectada",
        f"Valor: {format_amount(amount)}",
        f"Totales hoy ({day_key}): FACTURAS {format_amount(totals.facturas_total)} | "
        f"TRANSACCIONES {format_amount(totals.transacciones_total)}",
        f"Remitente: {sender}",
        f"Media: {media_ref}",
    ])


def build_duplicate_notification(media_ref: str, first_seen_at: str, sender: str) -> str:
    return "\n".join([
        "DUPLICADO: este archivo ya fue procesado",
        f"Primera vez: {first_seen_at}",
        f"Remitente: {sender}",
        f"Media: {media_ref}",
    ])


class OutboxNotifier:
    """Queue messages as files in an outbox directory for another process to deliver."""

    def __init__(self, outbox_dir: Path):
        self.outbox_dir = Path(outbox_dir)

    def send(self, message: str, recipient: str) -> Path:
        """
        Enqueue a message.

        Returns:
            Path of the pending message file
        """
        self.outbox_dir.mkdir(parents=True, exist_ok=True)
        slug = re.sub(r'[^0-9A-Za-z]+', '', recipient) or 'operator'
        path = self.outbox_dir / f"notify-{slug}-{time.time_ns() // 1_000_000}.txt"
        # Same millisecond, different message
        counter = 1
        while path.exists():
            path = self.outbox_dir / f"notify-{slug}-{time.time_ns() // 1_000_000}-{counter}.txt"
            counter += 1

        path.write_text(f"TO:{recipient}\n{message}\n", encoding='utf-8')
        logger.info(f"Queued notification for {recipient}: {path.name}")
        return path
