"""Custom exception classes for cashflow-ocr."""


class CashflowError(Exception):
    """Base exception for cashflow-ocr."""
    pass


class InputError(CashflowError):
    """Media file is missing or cannot be read."""
    pass


class OCRError(CashflowError):
    """Text recognition failed for a single media item."""
    pass


class ConfigError(CashflowError):
    """Classification rules could not be loaded."""
    pass
