"""Base classes for document text parsers."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Dict
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """Result of a parsing operation with the text it came from."""
    value: Any
    source_text: str = ""
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


class BaseParser(ABC):
    """Base class for all document parsers."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def parse(self, fragment: str) -> Optional[Any]:
        """
        Parse a value out of a text fragment.

        Args:
            fragment: Text to parse

        Returns:
            Parsed value, or None if nothing usable was found
        """
        pass

    def _log_result(self, result: Optional[ParseResult]):
        """Log parsing result for debugging."""
        if result:
            self.logger.debug(f"Parsed: {result.value} from '{result.source_text}' {result.metadata}")
        else:
            self.logger.debug("Parsing failed - no result")
