"""
Output formatters for converting data structures to various formats.
"""

from .base import IOutputFormatter, normalize_value
from .markdown import MarkdownFormatter
from .csv import CsvFormatter
from .formatter import OutputFormatter

__all__ = [
    "IOutputFormatter",
    "normalize_value",
    "MarkdownFormatter",
    "CsvFormatter",
    "OutputFormatter",
]
