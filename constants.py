"""
TruFraudBot - Constants
Centralized limits and user-facing text to avoid magic strings throughout the codebase.
"""

# =============================================================================
# MESSAGE PROCESSING
# =============================================================================

MAX_REPLY_LENGTH = 1900          # Below Discord's 2000 limit, leaves room for formatting
ERROR_PREVIEW_LENGTH = 200       # Backend error text shown to users is cut to this

# =============================================================================
# BACKEND
# =============================================================================

NO_RESPONSE_TEXT = "(No response.)"

AUTH_ERROR_MESSAGE = (
    "Invalid or missing Gemini API key. Set GEMINI_API_KEY in .env "
    "or get a key at https://aistudio.google.com/apikey"
)

MODELS_EXHAUSTED_MESSAGE = (
    "All free-tier models are out of quota for today. Resets at midnight Pacific. "
    "See https://ai.google.dev/gemini-api/docs/rate-limits"
)

BACKEND_ERROR_PREFIX = "Gemini API error: "

# =============================================================================
# PROMPT TEMPLATES
# =============================================================================

RULES_PROMPT_TEMPLATE = "Follow these rules:\n{rules}\n\nUser message:\n{message}"

REPLY_CONTEXT_TEMPLATE = (
    "The user is replying to this specific message:\n\"\"\"\n{replied}\n\"\"\"\n\n"
    "Their reply: {message}"
)

# =============================================================================
# COMMAND REPLIES
# =============================================================================

CLEARED_MESSAGE = "Conversation cleared for this channel."
RULE_ADDED_MESSAGE = "Added rule."
RULE_REMOVED_MESSAGE = "Removed rule {number}."
RULE_UPDATED_MESSAGE = "Updated rule {number}."

ADDRULE_USAGE = "Usage: `{prefix} addrule <your rule text>`"
REMOVERULE_USAGE = "Usage: `{prefix} removerule <number>` (use listrules to see numbers)."
EDITRULE_EXAMPLE_USAGE = (
    "Usage: `{prefix} editrule <number> <new text>`  e.g. `{prefix} editrule 1 Always be concise`"
)
EDITRULE_USAGE = "Usage: `{prefix} editrule <number> <new text>` (use listrules to see numbers)."
NO_RULES_MESSAGE = "No rules yet. Use `{prefix} addrule <text>` to add one."
