"""
Schema Forge: ask questions about a database in plain language
"""

__version__ = "0.1.0"
