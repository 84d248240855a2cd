"""
app/flow/states.py

Purpose: Defines all conversation steps

- Enum for each step of the ordering dialogue
  (IDLE, VIEWING_MENU, AWAITING_ADDRESS)
- Single source of truth for flow stages
- Step transition table enforced by BaseHandler state updates
- Keyword sets that drive step-independent commands
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional
from dataclasses import dataclass


class ConversationStep(str, Enum):
    """
    Defines all possible steps in the ordering conversation.
    A cleared conversation is equivalent to IDLE.
    """

    IDLE = "idle"
    VIEWING_MENU = "viewing_menu"
    AWAITING_ADDRESS = "awaiting_address"


@dataclass
class StepMetadata:
    """
    Metadata associated with each conversation step.
    """
    name: ConversationStep
    accepts_item_codes: bool = False
    description: str = ""


STEP_METADATA: Dict[ConversationStep, StepMetadata] = {
    ConversationStep.IDLE: StepMetadata(
        name=ConversationStep.IDLE,
        accepts_item_codes=True,
        description="No conversation in progress"
    ),
    ConversationStep.VIEWING_MENU: StepMetadata(
        name=ConversationStep.VIEWING_MENU,
        accepts_item_codes=True,
        description="Catalog shown, waiting for item codes"
    ),
    ConversationStep.AWAITING_ADDRESS: StepMetadata(
        name=ConversationStep.AWAITING_ADDRESS,
        description="Items chosen, waiting for delivery address or pickup"
    ),
}


# Valid step transitions. Leaving AWAITING_ADDRESS for IDLE means the
# order was created and the state cleared.
STEP_TRANSITIONS: Dict[ConversationStep, List[ConversationStep]] = {
    ConversationStep.IDLE: [
        ConversationStep.VIEWING_MENU,
        ConversationStep.AWAITING_ADDRESS,
    ],
    ConversationStep.VIEWING_MENU: [
        ConversationStep.VIEWING_MENU,
        ConversationStep.AWAITING_ADDRESS,
    ],
    ConversationStep.AWAITING_ADDRESS: [
        ConversationStep.VIEWING_MENU,  # Menu command restarts
        ConversationStep.IDLE,
    ],
}


MENU_COMMANDS: FrozenSet[str] = frozenset({"menu", "hi", "hello", "start"})
ORDER_HISTORY_COMMANDS: FrozenSet[str] = frozenset({"orders", "my orders"})
HELP_COMMANDS: FrozenSet[str] = frozenset({"help"})
PICKUP_KEYWORDS: FrozenSet[str] = frozenset({"pickup", "collection"})


def is_valid_transition(from_step: ConversationStep, to_step: ConversationStep) -> bool:
    """
    Checks if a step transition is valid.

    Args:
        from_step: Current step
        to_step: Target step

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_step in STEP_TRANSITIONS.get(from_step, [])


def coerce_step(value: Optional[str]) -> ConversationStep:
    """
    Maps a persisted step value to a ConversationStep.
    Missing or unknown values fall back to IDLE.
    """
    try:
        return ConversationStep(value)
    except ValueError:
        return ConversationStep.IDLE


def get_step_metadata(step: ConversationStep) -> StepMetadata:
    return STEP_METADATA[step]
