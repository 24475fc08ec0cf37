"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Command keywords
- Profile field names

(Prevents hardcoding across the codebase)
"""

# ============================================================
# WELCOME & ONBOARDING
# ============================================================

WELCOME_MESSAGE = "Welcome to ReceiptBot! Let's set up your brand. What is your Brand Name?"

BRAND_NAME_REPROMPT_MESSAGE = """🤔 I didn't catch that.

Please reply with your *Brand Name* (for example: Acme Co)."""

CATEGORY_PROMPT_TEMPLATE = """Great, *{brand_name}* it is! 🎉

What *category* best describes your business?
(for example: Bakery, Salon, Hardware Store)"""

CATEGORY_REPROMPT_MESSAGE = """🤔 I didn't catch that.

Please reply with your business *category* (for example: Bakery)."""

SETUP_COMPLETE_TEMPLATE = """✅ *You're all set!*

🏷️ Brand: {brand_name}
📂 Category: {category}

Type *help* to see what I can do."""


# ============================================================
# COMMANDS (available once onboarding is completed)
# ============================================================

COMMAND_PING = "ping"
COMMAND_HELP = "help"
COMMAND_PROFILE = "profile"

PONG_MESSAGE = "pong"

HELP_MESSAGE = """📚 *Available commands:*

*ping* - check that I'm online
*profile* - show your brand details
*help* - show this message"""

PROFILE_TEMPLATE = """🏷️ Brand: {brand_name}
📂 Category: {category}"""

GENERIC_HELP_MESSAGE = "👋 How can I help you today? Type *help* to see what I can do."


# ============================================================
# ERRORS
# ============================================================

ERROR_MESSAGE = "Sorry, an error occurred. Please try again later."


# ============================================================
# PROFILE FIELDS
# ============================================================

PROFILE_BRAND_NAME = "brandName"
PROFILE_CATEGORY = "category"

PROFILE_PLACEHOLDER = "-"
