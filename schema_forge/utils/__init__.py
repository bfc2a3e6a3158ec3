"""
Utility functions and helper classes
"""

from .logger import setup_logger
from .retry import RetryExecutor, RetryOutcome
from .schema_analyzer import SchemaAnalyzer
from .sql_extractor import ExtractedSQL, extract_sql

__all__ = [
    'setup_logger',
    'RetryExecutor',
    'RetryOutcome',
    'SchemaAnalyzer',
    'ExtractedSQL',
    'extract_sql',
]
