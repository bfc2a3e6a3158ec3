#!/usr/bin/env python3
"""
Main entry point for Schema Forge
"""

from schema_forge.cli.main_cli import main

if __name__ == "__main__":
    main()
