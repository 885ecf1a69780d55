"""End-to-end processing of inbound media: dedup, OCR, classify, record, notify."""

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from tqdm import tqdm

from .classify import DocumentClassifier
from .config import AppConfig, ClassifierConfig
from .dedup import DedupGate, compute_media_ref
from .exceptions import OCRError
from .ledger import LedgerStore
from .models import (
    ClassificationRecord, MediaMetadata, PipelineResult,
    DUPLICATE, UNKNOWN, TRACKED_CATEGORIES,
)
from .notify import OutboxNotifier, build_notification, build_duplicate_notification
from .storage import JsonDocumentStore

logger = logging.getLogger(__name__)

NO_AMOUNT_OR_CATEGORY = 'no_valor_o_clasificacion'


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BatchSummary:
    """What happened to every file of a batch."""
    total: int = 0
    processed: int = 0
    duplicates: int = 0
    failed: int = 0
    results: List[PipelineResult] = field(default_factory=list)
    # Items that were not recorded, plus recorded items whose follow-up step failed
    failures: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'processed': self.processed,
            'duplicates': self.duplicates,
            'failed': self.failed,
            'failures': dict(self.failures),
        }


class ClassificationPipeline:
    """Processes one media item at a time against the ledger."""

    def __init__(self,
                 ocr,
                 classifier: DocumentClassifier,
                 dedup: DedupGate,
                 ledger: LedgerStore,
                 notifier: Optional[OutboxNotifier] = None,
                 recipient: str = 'operator',
                 clock: Callable[[], datetime] = _utc_now):
        """
        Args:
            ocr: Object with an async recognize(image_path) -> str
            classifier: Document classifier
            dedup: At-most-once guard
            ledger: Category logs and daily totals
            notifier: Outbox for notification texts, None to only return them
            recipient: Who notifications are addressed to
            clock: Source of "now" for items without a received time
        """
        self.ocr = ocr
        self.classifier = classifier
        self.dedup = dedup
        self.ledger = ledger
        self.notifier = notifier
        self.recipient = recipient
        self.clock = clock
        self.supported_extensions = classifier.config.supported_extensions

    @classmethod
    def from_config(cls,
                    config: AppConfig,
                    classifier_config: Optional[ClassifierConfig] = None,
                    ocr=None,
                    notify: bool = True) -> "ClassificationPipeline":
        """File-backed pipeline for a deployment."""
        if ocr is None:
            from .ocr import OCRProcessor
            ocr = OCRProcessor()

        return cls(
            ocr=ocr,
            classifier=DocumentClassifier(classifier_config or ClassifierConfig.from_yaml()),
            dedup=DedupGate(JsonDocumentStore(config.seen_path, default_factory=lambda: {'seen': {}})),
            ledger=LedgerStore.from_config(config),
            notifier=OutboxNotifier(config.outbox_dir) if notify else None,
            recipient=config.recipient,
        )

    async def process(self, media_path: Path, metadata: Optional[MediaMetadata] = None) -> PipelineResult:
        """
        Classify one media file and record it.

        Args:
            media_path: Path to the image received
            metadata: Source, sender, received time and message id

        Returns:
            PipelineResult

        Raises:
            InputError: missing or unreadable file, nothing is written
            OCRError: text recognition failed for this item
        """
        media_path = Path(media_path)
        metadata = metadata or MediaMetadata()
        received_at = metadata.received_at or self.clock()

        ref = compute_media_ref(media_path)
        media_ref = str(ref)

        seen = self.dedup.observe(ref)
        if seen.is_duplicate:
            text = build_duplicate_notification(media_ref, seen.first_seen_at, metadata.sender)
            self._notify(text)
            return PipelineResult(
                category=DUPLICATE,
                amount=None,
                media_ref=media_ref,
                notification_text=text,
                first_seen_at=seen.first_seen_at,
                message_id=metadata.message_id,
            )

        notes = []
        ext = media_path.suffix.lower()
        if ext in self.supported_extensions:
            text = await self._recognize(media_path)
        else:
            logger.warning(f"Unsupported media type for {media_path.name}: {ext or 'none'}")
            text = ''
            notes.append(f"unsupported_media_type:{ext or 'none'}")

        classification = self.classifier.classify(text)
        key = self.ledger.get_day_key(received_at)

        if classification.category in TRACKED_CATEGORIES:
            record = self._record(received_at, metadata, classification.category,
                                  classification.amount, notes, media_ref)
            day_totals = self.ledger.record_event(record)
        else:
            if classification.hint:
                notes.append(f"classifier_hint:{classification.hint}")
            if not notes:
                notes.append(NO_AMOUNT_OR_CATEGORY)
            record = self._record(received_at, metadata, UNKNOWN, None, notes, media_ref)
            self.ledger.record_unclassified(record)
            day_totals = self.ledger.get_day_totals(key)

        notification = build_notification(
            category=record.category,
            amount=record.amount,
            day_key=key,
            totals=day_totals,
            sender=metadata.sender,
            media_ref=media_ref,
        )
        self._notify(notification)

        return PipelineResult(
            category=record.category,
            amount=record.amount,
            media_ref=media_ref,
            day_key=key,
            day_totals=day_totals,
            notification_text=notification,
            first_seen_at=seen.first_seen_at,
            notes=record.notes,
            message_id=metadata.message_id,
        )

    async def process_batch(self,
                            media_paths: Iterable[Path],
                            metadata: Optional[MediaMetadata] = None,
                            on_done: Optional[Callable[[Path, PipelineResult], None]] = None) -> BatchSummary:
        """
        Process files strictly one after another.

        A failing item is logged and counted; the rest of the batch still runs.
        """
        media_paths = list(media_paths)
        summary = BatchSummary(total=len(media_paths))

        with tqdm(total=len(media_paths), desc="Processing media") as pbar:
            for media_path in media_paths:
                try:
                    result = await self.process(media_path, metadata)
                except Exception as e:
                    logger.error(f"Failed to process {media_path}: {e}")
                    summary.failed += 1
                    summary.failures[str(media_path)] = str(e)
                else:
                    summary.results.append(result)
                    if result.is_duplicate:
                        summary.duplicates += 1
                    else:
                        summary.processed += 1
                    if on_done:
                        try:
                            on_done(Path(media_path), result)
                        except Exception as e:
                            # the item is already recorded; only the follow-up failed
                            logger.error(f"Post-processing failed for {media_path}: {e}")
                            summary.failures[str(media_path)] = f"post-processing: {e}"

                pbar.update(1)
                pbar.set_postfix({'processed': summary.processed, 'failed': summary.failed})

        logger.info(f"Batch complete. Processed: {summary.processed}, "
                    f"Duplicates: {summary.duplicates}, Failed: {summary.failed}")
        return summary

    async def process_inbox(self, inbox_dir: Path, metadata: Optional[MediaMetadata] = None) -> BatchSummary:
        """Process every file in an inbox directory and move handled ones to processed/."""
        inbox_dir = Path(inbox_dir)
        done_dir = inbox_dir / 'processed'
        files = sorted(
            p for p in inbox_dir.iterdir()
            if p.is_file() and p != done_dir and not p.name.startswith('.')
        )
        logger.info(f"Found {len(files)} files in {inbox_dir}")

        def move_to_done(media_path: Path, result: PipelineResult):
            done_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(media_path), str(done_dir / media_path.name))

        return await self.process_batch(files, metadata or MediaMetadata(source='inbox', sender='manual'),
                                        on_done=move_to_done)

    async def _recognize(self, media_path: Path) -> str:
        try:
            return await self.ocr.recognize(media_path) or ''
        except OCRError:
            raise
        except Exception as e:
            raise OCRError(f"OCR failed for {media_path.name}: {e}") from e

    def _record(self, received_at: datetime, metadata: MediaMetadata, category: str,
                amount: Optional[int], notes: List[str], media_ref: str) -> ClassificationRecord:
        return ClassificationRecord(
            received_at=received_at,
            source=metadata.source,
            sender=metadata.sender,
            category=category,
            amount=amount,
            notes=';'.join(notes),
            media_ref=media_ref,
        )

    def _notify(self, text: str):
        if self.notifier:
            self.notifier.send(text, self.recipient)
