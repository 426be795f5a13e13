"""
Utility modules for the nearby search engine.
"""

from .formatting import format_currency, format_percent, format_miles
from .config import Config

__all__ = ["format_currency", "format_percent", "format_miles", "Config"]
