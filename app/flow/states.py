"""
app/flow/states.py

Purpose: Defines all conversation states

- Enum for each step of the onboarding flow
  (NEW, AWAITING_BRAND_NAME, AWAITING_CATEGORY, COMPLETED)
- Single source of truth for flow stages
- State transition validation
"""

from enum import Enum
from typing import Dict, List, Optional


class ConversationState(str, Enum):
    """
    Defines all possible states in the onboarding conversation.
    Values are the strings stored in the user document.
    """

    NEW = "new"
    AWAITING_BRAND_NAME = "awaiting_brand_name"
    AWAITING_CATEGORY = "awaiting_category"
    COMPLETED = "completed"


# State given to a user record on first contact
INITIAL_STATE = ConversationState.AWAITING_BRAND_NAME

# Onboarding is finished; further input goes to command dispatch
TERMINAL_STATE = ConversationState.COMPLETED


# Valid state transitions - prevents users from skipping steps
STATE_TRANSITIONS: Dict[ConversationState, List[ConversationState]] = {
    ConversationState.NEW: [
        ConversationState.AWAITING_BRAND_NAME,
    ],
    ConversationState.AWAITING_BRAND_NAME: [
        ConversationState.AWAITING_CATEGORY,
        ConversationState.AWAITING_BRAND_NAME,  # Re-prompt on blank input
    ],
    ConversationState.AWAITING_CATEGORY: [
        ConversationState.COMPLETED,
        ConversationState.AWAITING_CATEGORY,  # Re-prompt on blank input
    ],
    ConversationState.COMPLETED: [
        ConversationState.COMPLETED,  # Commands never leave the terminal state
    ],
}


def is_valid_transition(from_state: ConversationState, to_state: ConversationState) -> bool:
    """
    Checks if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is allowed, False otherwise
    """
    allowed_transitions = STATE_TRANSITIONS.get(from_state, [])
    return to_state in allowed_transitions


def parse_state(value: Optional[str]) -> ConversationState:
    """
    Converts a stored state value into a ConversationState.

    Unknown or missing values fall back to the initial onboarding state
    so a malformed document never breaks the conversation.
    """
    if isinstance(value, ConversationState):
        return value
    try:
        return ConversationState(value)
    except ValueError:
        return INITIAL_STATE
