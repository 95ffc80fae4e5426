# Shared utilities: input sanitization
from confluence_scanner.utils.sanitize import is_valid_symbol, sanitize_symbol

__all__ = ["is_valid_symbol", "sanitize_symbol"]
