"""
Terminal output helpers.

Every stage reports through a Console instance so that the pipeline
itself never prints and tests can capture what an operator would see.
"""

from __future__ import annotations

import sys


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_success(msg: str) -> None:
    """Print success message."""
    print(colored(f"✓ {msg}", Colors.GREEN))


def print_warning(msg: str) -> None:
    """Print warning message."""
    print(colored(f"⚠ Warning: {msg}", Colors.YELLOW))


def print_info(msg: str) -> None:
    """Print info message."""
    print(colored(f"ℹ {msg}", Colors.CYAN))


class Console:
    def __init__(self, verbose: bool = False, quiet: bool = False):
        self.verbose = verbose
        self.quiet = quiet

    def log(self, msg: str) -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg)

    def log_verbose(self, msg: str) -> None:
        """Log message if verbose."""
        if self.verbose:
            print(colored(f"  → {msg}", Colors.BLUE))

    def step(self, msg: str) -> None:
        self.log(colored(msg, Colors.BOLD))

    def info(self, msg: str) -> None:
        if not self.quiet:
            print_info(msg)

    def success(self, msg: str) -> None:
        if not self.quiet:
            print_success(msg)

    def warning(self, msg: str) -> None:
        # Warnings are shown even in quiet mode
        print_warning(msg)

    def error(self, msg: str) -> None:
        print_error(msg)

