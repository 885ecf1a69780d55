"""Text parsing components for financial documents."""

from .amount_parser import AmountParser, format_cop

__all__ = ['AmountParser', 'format_cop']
