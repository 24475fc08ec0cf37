"""
app/flow/engine.py

Purpose: Conversation engine (onboarding state machine)

- Pure function: (state, profile, input) -> Transition
- No I/O, no clock, no randomness
- Explicit (state, input class) transition table
- Total: every input produces a valid state and a reply
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Tuple

from app.flow.commands import dispatch_command
from app.flow.states import ConversationState, TERMINAL_STATE, parse_state
from utils.constants import (
    BRAND_NAME_REPROMPT_MESSAGE,
    CATEGORY_PROMPT_TEMPLATE,
    CATEGORY_REPROMPT_MESSAGE,
    PROFILE_BRAND_NAME,
    PROFILE_CATEGORY,
    PROFILE_PLACEHOLDER,
    SETUP_COMPLETE_TEMPLATE,
    WELCOME_MESSAGE,
)
from utils.validation_utils import INPUT_EMPTY, INPUT_TEXT, classify_input, normalize_input


@dataclass(frozen=True)
class Transition:
    """Result of one state machine step."""
    next_state: ConversationState
    updated_profile: Dict[str, str] = field(default_factory=dict)
    reply_text: str = ""
    terminal: bool = False


# A step receives the current profile and the trimmed input and returns
# (next state, profile fields to set, reply text).
Step = Callable[[Mapping[str, str], str], Tuple[ConversationState, Dict[str, str], str]]


def _greet(profile, text):
    return ConversationState.AWAITING_BRAND_NAME, {}, WELCOME_MESSAGE


def _store_brand_name(profile, text):
    return (
        ConversationState.AWAITING_CATEGORY,
        {PROFILE_BRAND_NAME: text},
        CATEGORY_PROMPT_TEMPLATE.format(brand_name=text),
    )


def _reprompt_brand_name(profile, text):
    return ConversationState.AWAITING_BRAND_NAME, {}, BRAND_NAME_REPROMPT_MESSAGE


def _store_category(profile, text):
    reply = SETUP_COMPLETE_TEMPLATE.format(
        brand_name=profile.get(PROFILE_BRAND_NAME, PROFILE_PLACEHOLDER),
        category=text,
    )
    return ConversationState.COMPLETED, {PROFILE_CATEGORY: text}, reply


def _reprompt_category(profile, text):
    return ConversationState.AWAITING_CATEGORY, {}, CATEGORY_REPROMPT_MESSAGE


def _run_command(profile, text):
    return ConversationState.COMPLETED, {}, dispatch_command(text, profile)


TRANSITION_TABLE: Dict[Tuple[ConversationState, str], Step] = {
    (ConversationState.NEW, INPUT_TEXT): _greet,
    (ConversationState.NEW, INPUT_EMPTY): _greet,
    (ConversationState.AWAITING_BRAND_NAME, INPUT_TEXT): _store_brand_name,
    (ConversationState.AWAITING_BRAND_NAME, INPUT_EMPTY): _reprompt_brand_name,
    (ConversationState.AWAITING_CATEGORY, INPUT_TEXT): _store_category,
    (ConversationState.AWAITING_CATEGORY, INPUT_EMPTY): _reprompt_category,
    (ConversationState.COMPLETED, INPUT_TEXT): _run_command,
    (ConversationState.COMPLETED, INPUT_EMPTY): _run_command,
}


def transition(
    state: ConversationState,
    profile: Optional[Mapping[str, str]],
    input_text: Optional[str],
) -> Transition:
    """
    Computes the next conversation step.

    Args:
        state: Current state (enum member or stored string value)
        profile: Collected onboarding fields; never mutated
        input_text: Raw message body

    Returns:
        Transition with the next state, the full updated profile,
        the reply text and whether onboarding is finished
    """
    current = parse_state(state)
    current_profile = dict(profile or {})
    text = normalize_input(input_text)

    step = TRANSITION_TABLE[(current, classify_input(text))]
    next_state, updates, reply = step(current_profile, text)

    updated_profile = {**current_profile, **updates}

    return Transition(
        next_state=next_state,
        updated_profile=updated_profile,
        reply_text=reply,
        terminal=next_state == TERMINAL_STATE,
    )
