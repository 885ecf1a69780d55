"""cashflow-ocr - Classify Colombian invoices and transfer receipts into daily COP totals."""

__version__ = "1.0.0"
__author__ = "cashflow-ocr Team"
__email__ = ""

from .classify import DocumentClassifier, Classification
from .config import AppConfig, ClassifierConfig
from .dedup import DedupGate, compute_media_ref
from .ledger import LedgerStore, day_key
from .models import MediaMetadata, MediaRef, PipelineResult, DayTotals
from .parsers import AmountParser
from .pipeline import ClassificationPipeline

__all__ = [
    'AmountParser',
    'DocumentClassifier',
    'Classification',
    'AppConfig',
    'ClassifierConfig',
    'DedupGate',
    'compute_media_ref',
    'LedgerStore',
    'day_key',
    'MediaMetadata',
    'MediaRef',
    'PipelineResult',
    'DayTotals',
    'ClassificationPipeline',
]
