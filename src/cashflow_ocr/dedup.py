"""At-most-once guard keyed by media content fingerprint."""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .exceptions import InputError
from .models import MediaRef
from .storage import DocumentStore

logger = logging.getLogger(__name__)

FINGERPRINT_LENGTH = 12


def compute_media_ref(media_path: Path) -> MediaRef:
    """
    Fingerprint a media file by its content.

    Raises:
        InputError: if the file is missing or unreadable
    """
    media_path = Path(media_path)
    if not media_path.is_file():
        raise InputError(f"Media file not found: {media_path}")

    sha1 = hashlib.sha1()
    try:
        with open(media_path, 'rb') as f:
            while chunk := f.read(8192):
                sha1.update(chunk)
    except OSError as e:
        raise InputError(f"Cannot read media file {media_path}: {e}") from e

    return MediaRef(fingerprint=sha1.hexdigest()[:FINGERPRINT_LENGTH], filename=media_path.name)


@dataclass(frozen=True)
class DedupResult:
    is_duplicate: bool
    first_seen_at: str


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DedupGate:
    """Remembers every MediaRef ever observed, with its first-seen time."""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = _utc_now):
        self.store = store
        self.clock = clock

    def observe(self, ref: MediaRef) -> DedupResult:
        """
        Register a media reference, or report that it was seen before.

        Entries are never changed once written, so a repeated observation has
        no side effects and returns the original timestamp.
        """
        key = str(ref)
        document = self.store.get()
        seen = document.get('seen')
        if not isinstance(seen, dict):
            seen = {}

        if key in seen:
            logger.info(f"Duplicate media {key}, first seen at {seen[key]}")
            return DedupResult(is_duplicate=True, first_seen_at=seen[key])

        first_seen_at = self.clock().isoformat()
        seen[key] = first_seen_at
        document['seen'] = seen
        self.store.set(document)

        logger.debug(f"Registered media {key} at {first_seen_at}")
        return DedupResult(is_duplicate=False, first_seen_at=first_seen_at)

    def is_known(self, ref: MediaRef) -> bool:
        seen = self.store.get().get('seen')
        return isinstance(seen, dict) and str(ref) in seen

