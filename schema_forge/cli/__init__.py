"""
Interactive command line interface
"""

from .commands import Command, parse_command
from .main_cli import main

__all__ = ['Command', 'parse_command', 'main']
