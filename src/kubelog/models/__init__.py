"""
Data models for kubelog.
"""

from .log_line import LogLine, parse_log_line, filter_lines, TIMESTAMP_PATTERN
from .pod import PodSummary, format_age

__all__ = [
    'LogLine',
    'parse_log_line',
    'filter_lines',
    'TIMESTAMP_PATTERN',
    'PodSummary',
    'format_age',
]
