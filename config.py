"""
TruFraudBot - Configuration
API keys, prefixes, model list, and bot settings.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Discord Bot Token (console mode when unset)
DISCORD_TOKEN = (os.getenv('DISCORD_TOKEN') or '').strip()

# Gemini credential
GEMINI_API_KEY = os.getenv('GEMINI_API_KEY') or os.getenv('GOOGLE_API_KEY') or ''


# --- Prefixes ---

FB_PREFIX = (os.getenv('BOT_PREFIX_FB') or 'fb').strip()  # rules-augmented chat
TB_PREFIX = (os.getenv('BOT_PREFIX_TB') or 'tb').strip()  # plain chat


# --- Rules Storage ---

RULES_FILE = os.getenv('RULES_FILE') or os.path.join(os.getcwd(), 'rules.txt')


# --- Provider Configuration ---

GEMINI_API_URL = os.getenv('GEMINI_API_URL', 'https://generativelanguage.googleapis.com/v1beta')

# Highest free daily quota first, so stricter quotas are only spent on fallback
DEFAULT_CHAT_MODELS = ['gemini-2.0-flash-lite', 'gemini-2.0-flash', 'gemini-2.5-flash']


def load_chat_models() -> list[str]:
    """Load the ordered model candidates from GEMINI_MODELS or use defaults."""
    raw = os.getenv('GEMINI_MODELS', '')
    models = [m.strip() for m in raw.split(',') if m.strip()]
    return models or list(DEFAULT_CHAT_MODELS)


CHAT_MODELS = load_chat_models()

API_TIMEOUT = float(os.getenv('API_TIMEOUT', '120'))

# AI Settings
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048

# Limits
MAX_HISTORY_TURNS = int(os.getenv('MAX_HISTORY_TURNS', '20'))  # user+model pairs sent per request


# --- Observability ---

METRICS_PORT = int(os.getenv('METRICS_PORT', '0') or 0)  # 0 = exporter disabled
LOG_LEVEL = os.getenv('LOG_LEVEL', 'normal').strip().lower()
