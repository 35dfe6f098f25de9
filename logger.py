"""
TruFraudBot - Logging Utilities
Clean, organized console logging with icon indicators.
"""

import logging
from datetime import datetime

from config import LOG_LEVEL as _CONFIGURED_LEVEL

# Log levels
QUIET = 0   # Only errors
NORMAL = 1  # Errors + important events
VERBOSE = 2 # Everything

_LEVELS = {"quiet": QUIET, "normal": NORMAL, "verbose": VERBOSE}

# Controlled by LOG_LEVEL in .env (quiet, normal, verbose)
LOG_LEVEL = _LEVELS.get(_CONFIGURED_LEVEL, NORMAL)


class Colors:
    """ANSI color codes for terminal output."""
    OK = '\033[92m'      # Green
    WARN = '\033[93m'    # Yellow
    FAIL = '\033[91m'    # Red
    INFO = '\033[94m'    # Blue
    DIM = '\033[90m'     # Gray
    BOLD = '\033[1m'
    END = '\033[0m'


def set_level(level: int):
    """Change verbosity at runtime."""
    global LOG_LEVEL
    LOG_LEVEL = level


def _timestamp():
    return datetime.now().strftime("%H:%M:%S")


def _log(icon: str, color: str, msg: str, ctx: str = None, level: int = NORMAL):
    if level > LOG_LEVEL:
        return

    ts = f"{Colors.DIM}{_timestamp()}{Colors.END}"
    prefix = f"[{ctx}] " if ctx else ""
    print(f"{ts} {color}{icon}{Colors.END} {prefix}{msg}")


# Public logging functions; ctx is a short label such as "fb:1234"
def ok(msg: str, ctx: str = None):
    """Log success message."""
    _log("✓", Colors.OK, msg, ctx, NORMAL)


def warn(msg: str, ctx: str = None):
    """Log warning message."""
    _log("⚠", Colors.WARN, msg, ctx, NORMAL)


def error(msg: str, ctx: str = None):
    """Log error message (shown even in quiet mode)."""
    _log("✗", Colors.FAIL, msg, ctx, QUIET)


def info(msg: str, ctx: str = None):
    _log("ℹ", Colors.INFO, msg, ctx, NORMAL)


def debug(msg: str, ctx: str = None):
    """Log debug message (only in verbose mode)."""
    _log("•", Colors.DIM, msg, ctx, VERBOSE)


def startup(msg: str):
    """Log startup message (always shown)."""
    print(f"{Colors.BOLD}{msg}{Colors.END}")


def online(msg: str, ctx: str = None):
    """Log connection status (always shown)."""
    ts = f"{Colors.DIM}{_timestamp()}{Colors.END}"
    prefix = f"[{ctx}] " if ctx else ""
    print(f"{ts} {Colors.OK}●{Colors.END} {prefix}{msg}")


def divider():
    print(f"{Colors.DIM}{'─' * 50}{Colors.END}")


# Library loggers that are noisy below WARNING
_QUIET_LIBRARIES = ('discord', 'discord.http', 'discord.gateway', 'aiohttp')


def configure_stdlib_logging(level: int = None):
    """Route stdlib `logging` (providers, discord.py) to stderr.

    Library output follows the console level: INFO in verbose mode,
    WARNING otherwise. discord.py and aiohttp stay at WARNING.
    """
    level = LOG_LEVEL if level is None else level
    logging.basicConfig(
        level=logging.INFO if level >= VERBOSE else logging.WARNING,
        format='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
