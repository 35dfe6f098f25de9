"""
TruFraudBot - Startup Validation
Ensures configuration is valid before the bot starts.
Provides helpful error messages and setup guidance.
"""

import os
import shutil
import sys
from pathlib import Path
from typing import List, Tuple

from logger import Colors


def ok(msg): print(f"{Colors.OK}✓{Colors.END} {msg}")
def warn(msg): print(f"{Colors.WARN}⚠{Colors.END} {msg}")
def fail(msg): print(f"{Colors.FAIL}✗{Colors.END} {msg}")


BASE_DIR = Path(__file__).parent


def check_env_file(interactive: bool = True, base_dir: Path = BASE_DIR) -> Tuple[bool, List[str]]:
    """Check if .env exists, offer to create it from .env.example.

    A missing .env is only a warning: everything can come from the environment.
    """
    env_file = base_dir / ".env"
    env_example = base_dir / ".env.example"

    if env_file.exists():
        ok(".env file found")
        return True, []

    if interactive and env_example.exists():
        warn(".env file missing")
        try:
            response = input("Create .env from .env.example? [y/N]: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            response = ""
        if response in ('y', 'yes'):
            shutil.copy(env_example, env_file)
            ok("Created .env from .env.example")
            warn("Edit .env and add GEMINI_API_KEY (and DISCORD_TOKEN for Discord mode)")
            return False, ["new .env created - needs editing"]

    warn(".env file not found, using process environment only")
    return False, ["no .env file"]


def check_api_key(api_key: str, discord_mode: bool) -> Tuple[bool, List[str]]:
    """Discord mode cannot prompt for a key, console mode can."""
    if api_key:
        ok(f"Gemini API key set (len={len(api_key)})")
        return True, []
    if discord_mode:
        fail("GEMINI_API_KEY (or GOOGLE_API_KEY) not set - required in Discord mode")
        return False, ["missing GEMINI_API_KEY"]
    warn("GEMINI_API_KEY not set - you will be asked for it")
    return False, ["no API key in environment"]


def check_discord_token(token: str) -> Tuple[bool, List[str]]:
    if not token:
        ok("DISCORD_TOKEN not set - console mode")
        return True, []
    # Basic shape check - Discord tokens are long, dot-separated strings
    if len(token) > 50 and '.' in token:
        ok("DISCORD_TOKEN is set - Discord mode")
        return True, []
    warn("DISCORD_TOKEN looks unusual (too short or wrong format)")
    return False, ["DISCORD_TOKEN looks unusual"]


def check_rules_file(path: str) -> Tuple[bool, List[str]]:
    """The rules file, or its directory, must be writable."""
    target = path if os.path.exists(path) else (os.path.dirname(path) or ".")
    if not os.path.exists(target):
        # Created on first addrule
        ok(f"Rules file will be created at {path}")
        return True, []
    if os.access(target, os.W_OK):
        ok(f"Rules file: {path}")
        return True, []
    fail(f"Rules file not writable: {path}")
    return False, ["invalid rules file location (not writable)"]


def validate_startup(
    api_key: str,
    discord_token: str,
    rules_path: str,
    interactive: bool = True
) -> bool:
    """
    Run all startup validation checks.

    Args:
        api_key: Configured Gemini API key (may be empty)
        discord_token: Configured Discord token (empty selects console mode)
        rules_path: Location of the rules file
        interactive: If True, offer to fix issues. If False, just report.

    Returns:
        True if no critical issue was found.
    """
    print(f"\n{Colors.BOLD}{'='*50}")
    print("TruFraudBot - Startup Validation")
    print(f"{'='*50}{Colors.END}\n")

    all_issues = []
    discord_mode = bool(discord_token)

    print(f"{Colors.BOLD}[1/4] Configuration Files{Colors.END}")
    all_issues.extend(check_env_file(interactive)[1])

    print(f"\n{Colors.BOLD}[2/4] Gemini API Key{Colors.END}")
    all_issues.extend(check_api_key(api_key, discord_mode)[1])

    print(f"\n{Colors.BOLD}[3/4] Discord Token{Colors.END}")
    all_issues.extend(check_discord_token(discord_token)[1])

    print(f"\n{Colors.BOLD}[4/4] Rules File{Colors.END}")
    all_issues.extend(check_rules_file(rules_path)[1])

    print(f"\n{Colors.BOLD}{'='*50}{Colors.END}")

    critical_issues = [i for i in all_issues if 'missing' in i.lower() or 'invalid' in i.lower()]

    if not all_issues:
        print(f"{Colors.OK}{Colors.BOLD}✓ All checks passed!{Colors.END}")
        return True
    if critical_issues:
        print(f"{Colors.FAIL}{Colors.BOLD}✗ {len(critical_issues)} critical issue(s) found:{Colors.END}")
        for issue in critical_issues:
            print(f"  • {issue}")
        print(f"\n{Colors.WARN}Please fix these issues and try again.{Colors.END}")
        return False

    print(f"{Colors.WARN}{Colors.BOLD}⚠ {len(all_issues)} warning(s):{Colors.END}")
    for issue in all_issues:
        print(f"  • {issue}")
    print(f"\n{Colors.INFO}Proceeding with warnings...{Colors.END}")
    return True


if __name__ == "__main__":
    from config import GEMINI_API_KEY, DISCORD_TOKEN, RULES_FILE

    success = validate_startup(GEMINI_API_KEY, DISCORD_TOKEN, RULES_FILE, interactive=True)
    sys.exit(0 if success else 1)
