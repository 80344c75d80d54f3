"""
Utility helpers used by the conversion tool.

This subpackage exposes the error taxonomy, structured JSONL logging, block
backups and the summary CSV generator.
"""

from .errors import EVENTS, report_error, report_ok
from .reports import generate_conversion_csv

__all__ = ["EVENTS", "report_error", "report_ok", "generate_conversion_csv"]
