"""Immutable configuration: classification rules and runtime paths."""

import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple, Optional, Pattern, Any

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent / 'rules' / 'classifier.yml'
DEFAULT_TIMEZONE = 'America/Bogota'


@dataclass(frozen=True)
class AmountPattern:
    """A labelled regex whose last capture group holds an amount fragment."""
    label: str
    regex: Pattern


@dataclass(frozen=True)
class CategoryRules:
    """Keywords and extraction strategy for one document category."""
    name: str
    keywords: Tuple[str, ...]
    amount_patterns: Tuple[AmountPattern, ...]
    fallback_to_max: bool = False


@dataclass(frozen=True)
class ClassifierConfig:
    """Everything the classifier needs to know, fixed at load time."""
    supported_extensions: Tuple[str, ...]
    categories: Tuple[CategoryRules, ...]

    def rules_for(self, category: str) -> Optional[CategoryRules]:
        for rules in self.categories:
            if rules.name == category:
                return rules
        return None

    @classmethod
    def from_yaml(cls, rules_path: Optional[Path] = None) -> "ClassifierConfig":
        """
        Load classification rules from a YAML file.

        Args:
            rules_path: Path to the rules file, defaults to the packaged rules

        Returns:
            Frozen ClassifierConfig
        """
        rules_path = Path(rules_path) if rules_path else DEFAULT_RULES_PATH
        try:
            with open(rules_path, 'r', encoding='utf-8') as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load classifier rules from {rules_path}: {e}")
            raise ConfigError(f"Cannot load rules from {rules_path}: {e}") from e

        config = cls.from_dict(raw or {})
        logger.info(f"Loaded {len(config.categories)} category rules from {rules_path}")
        return config

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ClassifierConfig":
        extensions = tuple(
            ext.lower() if ext.startswith('.') else f".{ext.lower()}"
            for ext in raw.get('supported_extensions', [])
        )

        categories = []
        for name, spec in (raw.get('categories') or {}).items():
            spec = spec or {}
            keywords = tuple(str(k).upper() for k in spec.get('keywords', []))
            if not keywords:
                raise ConfigError(f"Category {name} has no keywords")

            patterns = []
            for entry in spec.get('amount_patterns', []):
                try:
                    regex = re.compile(entry['pattern'], re.IGNORECASE)
                except (KeyError, TypeError, re.error) as e:
                    raise ConfigError(f"Invalid amount pattern for {name}: {entry!r}") from e
                patterns.append(AmountPattern(label=entry.get('label', entry['pattern']), regex=regex))

            categories.append(CategoryRules(
                name=str(name).upper(),
                keywords=keywords,
                amount_patterns=tuple(patterns),
                fallback_to_max=bool(spec.get('fallback_to_max', False)),
            ))

        if not categories:
            raise ConfigError("No categories defined in classifier rules")

        return cls(supported_extensions=extensions, categories=tuple(categories))


@dataclass(frozen=True)
class AppConfig:
    """Runtime locations and identity for one deployment."""
    data_dir: Path = Path('data')
    outbox_dir: Path = Path('outbox')
    inbox_dir: Path = Path('inbox')
    timezone: str = DEFAULT_TIMEZONE
    recipient: str = 'operator'

    @property
    def facturas_log(self) -> Path:
        return self.data_dir / 'facturas.csv'

    @property
    def transacciones_log(self) -> Path:
        return self.data_dir / 'transacciones.csv'

    @property
    def unclassified_log(self) -> Path:
        return self.data_dir / 'no_clasificadas.csv'

    @property
    def totals_path(self) -> Path:
        return self.data_dir / 'daily-totals.json'

    @property
    def seen_path(self) -> Path:
        return self.data_dir / 'seen.json'
