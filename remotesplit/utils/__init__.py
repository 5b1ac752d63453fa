"""
Utility helpers for remotesplit.
"""

from .logging import setup_logging
from .formatting import format_bytes, format_report

__all__ = ["setup_logging", "format_bytes", "format_report"]
