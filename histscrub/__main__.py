"""
Main entry point for running histscrub as a module.

Usage:
    python -m histscrub <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
