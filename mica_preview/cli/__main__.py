"""
Main entry point for the mica-preview CLI when run as a module.

This allows the CLI to be executed using:
    python -m mica_preview.cli
"""

import sys

from . import main

if __name__ == '__main__':
    sys.exit(main())
