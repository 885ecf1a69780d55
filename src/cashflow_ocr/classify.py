"""Keyword classification of financial documents and amount extraction."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .config import ClassifierConfig, CategoryRules
from .models import UNKNOWN
from .parsers import AmountParser

logger = logging.getLogger(__name__)


@dataclass
class Classification:
    """Result of classifying one document's text."""
    category: str
    amount: Optional[int] = None
    scores: Dict[str, int] = field(default_factory=dict)
    # Category the keywords pointed to when it was dropped for lack of an amount
    hint: Optional[str] = None
    matched_pattern: Optional[str] = None


class DocumentClassifier:
    """Classify OCR text as an invoice or a transaction and pull out its amount."""

    def __init__(self, config: Optional[ClassifierConfig] = None,
                 amount_parser: Optional[AmountParser] = None):
        """
        Initialize classifier with category rules.

        Args:
            config: Classification rules, defaults to the packaged rules
            amount_parser: Parser used for amount fragments
        """
        self.config = config or ClassifierConfig.from_yaml()
        self.amount_parser = amount_parser or AmountParser()

    def score(self, text: str) -> Dict[str, int]:
        """Count distinct keyword hits per category."""
        upper = (text or '').upper()
        return {
            rules.name: sum(1 for keyword in set(rules.keywords) if keyword in upper)
            for rules in self.config.categories
        }

    @staticmethod
    def resolve_category(scores: Dict[str, int]) -> str:
        """
        Pick the category whose score beats every other by at least one.

        A 0-0 score and any tie both resolve to UNKNOWN.
        """
        if not scores:
            return UNKNOWN

        ranked = sorted(scores.items(), key=lambda x: x[1], reverse=True)
        best_category, best_score = ranked[0]
        runner_up = ranked[1][1] if len(ranked) > 1 else 0

        if best_score >= runner_up + 1:
            return best_category
        return UNKNOWN

    def classify(self, text: str) -> Classification:
        """
        Classify a document and extract its amount.

        Args:
            text: Full OCR text

        Returns:
            Classification; UNKNOWN with no amount if either step fails
        """
        scores = self.score(text)
        category = self.resolve_category(scores)

        if category == UNKNOWN:
            logger.info(f"No clear category (scores: {scores})")
            return Classification(category=UNKNOWN, scores=scores)

        rules = self.config.rules_for(category)
        amount, pattern_label = self._extract_amount(text, rules)

        if amount is None:
            logger.warning(f"Classified as {category} but no amount found, reporting UNKNOWN")
            return Classification(category=UNKNOWN, scores=scores, hint=category)

        logger.info(f"Classified as {category} with amount {amount} (scores: {scores})")
        return Classification(
            category=category,
            amount=amount,
            scores=scores,
            matched_pattern=pattern_label,
        )

    def _extract_amount(self, text: str, rules: CategoryRules):
        result = self.amount_parser.extract(text, rules.amount_patterns)
        if result:
            return abs(result.value), result.metadata.get('pattern')

        if rules.fallback_to_max:
            amount = self.amount_parser.parse_max(text)
            if amount is not None:
                logger.debug(f"Using largest amount in document for {rules.name}: {amount}")
                return abs(amount), 'largest_amount'

        return None, None
