"""Persistence substrate: whole-document stores and append-only record logs.

Every store is read-modify-write on the whole document, with no locking and no
atomic replace. Two processes writing the same file at the same time can lose
updates; run one pipeline per data directory.
"""

import csv
import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List

from .models import LOG_HEADER

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """A single mutable document. Callers read it, change it and write it back."""

    @abstractmethod
    def get(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    def set(self, document: Dict[str, Any]):
        pass


class MemoryDocumentStore(DocumentStore):
    """In-process store, used in tests and dry runs."""

    def __init__(self, default_factory: Callable[[], Dict[str, Any]] = dict):
        self.default_factory = default_factory
        self._document = None

    def get(self) -> Dict[str, Any]:
        if self._document is None:
            return self.default_factory()
        return copy.deepcopy(self._document)

    def set(self, document: Dict[str, Any]):
        self._document = copy.deepcopy(document)


class JsonDocumentStore(DocumentStore):
    """JSON file on disk holding one document."""

    def __init__(self, path: Path, default_factory: Callable[[], Dict[str, Any]] = dict):
        self.path = Path(path)
        self.default_factory = default_factory

    def get(self) -> Dict[str, Any]:
        if not self.path.exists():
            return self.default_factory()

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            # Prior contents are lost on the next write
            logger.warning(f"Unreadable state in {self.path} ({e}), starting from an empty document")
            return self.default_factory()

        if not isinstance(document, dict):
            logger.warning(f"Unexpected document type in {self.path}, starting from an empty document")
            return self.default_factory()

        return document

    def set(self, document: Dict[str, Any]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(document, f, ensure_ascii=False, indent=2)
            f.write('\n')


class RecordLog(ABC):
    """Append-only log of ledger rows."""

    @abstractmethod
    def append(self, row: List[str]):
        pass

    @abstractmethod
    def records(self) -> List[Dict[str, str]]:
        """All rows as dicts keyed by the log header."""
        pass


class MemoryRecordLog(RecordLog):

    def __init__(self):
        self.rows: List[List[str]] = []

    def append(self, row: List[str]):
        self.rows.append(list(row))

    def records(self) -> List[Dict[str, str]]:
        return [dict(zip(LOG_HEADER, row)) for row in self.rows]


class CsvRecordLog(RecordLog):
    """CSV file with a fixed 8-column header, written once when the file is created.

    Fields holding a comma, a quote or a newline are double-quoted with
    internal quotes doubled.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def ensure_exists(self):
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8', newline='') as f:
            csv.writer(f, lineterminator='\n').writerow(LOG_HEADER)

    def append(self, row: List[str]):
        self.ensure_exists()
        with open(self.path, 'a', encoding='utf-8', newline='') as f:
            csv.writer(f, lineterminator='\n', quoting=csv.QUOTE_MINIMAL).writerow(row)

    def records(self) -> List[Dict[str, str]]:
        if not self.path.exists():
            return []
        with open(self.path, 'r', encoding='utf-8', newline='') as f:
            return list(csv.DictReader(f))
