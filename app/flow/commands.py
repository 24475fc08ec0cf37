"""
app/flow/commands.py

Purpose: Command dispatch for users who finished onboarding

- Maps a command keyword to a reply builder
- Unknown input gets the generic help reply
- Commands never change the conversation state

New post-onboarding features (receipts, payments) register here.
"""

from typing import Callable, Dict, Mapping

from utils.constants import (
    COMMAND_HELP,
    COMMAND_PING,
    COMMAND_PROFILE,
    GENERIC_HELP_MESSAGE,
    HELP_MESSAGE,
    PONG_MESSAGE,
    PROFILE_BRAND_NAME,
    PROFILE_CATEGORY,
    PROFILE_PLACEHOLDER,
    PROFILE_TEMPLATE,
)
from utils.validation_utils import normalize_command

CommandHandler = Callable[[Mapping[str, str]], str]


def _ping(profile: Mapping[str, str]) -> str:
    return PONG_MESSAGE


def _help(profile: Mapping[str, str]) -> str:
    return HELP_MESSAGE


def _profile(profile: Mapping[str, str]) -> str:
    return PROFILE_TEMPLATE.format(
        brand_name=profile.get(PROFILE_BRAND_NAME, PROFILE_PLACEHOLDER),
        category=profile.get(PROFILE_CATEGORY, PROFILE_PLACEHOLDER),
    )


COMMANDS: Dict[str, CommandHandler] = {
    COMMAND_PING: _ping,
    COMMAND_HELP: _help,
    COMMAND_PROFILE: _profile,
}


def dispatch_command(text: str, profile: Mapping[str, str]) -> str:
    """
    Returns the reply for a command sent after onboarding.

    Args:
        text: Raw or trimmed user input
        profile: The user's collected profile (read only)

    Returns:
        Reply text
    """
    handler = COMMANDS.get(normalize_command(text))
    if handler is None:
        return GENERIC_HELP_MESSAGE
    return handler(profile)
