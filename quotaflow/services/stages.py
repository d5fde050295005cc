"""
Deal stage parsing.

Stages arrive as free text from manual entry, HubSpot and Google Sheets
imports ("Closed Won", "closed_won", "closedwon", "CLOSED-WON", ...).
parse_stage maps every known spelling onto DealStage.
"""

import logging
import re
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class DealStage(str, Enum):
    """Canonical deal lifecycle state."""
    OPEN = "open"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


_SEPARATORS = re.compile(r"[\s_\-]+")

_STAGE_ALIASES = {
    "closedwon": DealStage.CLOSED_WON,
    "won": DealStage.CLOSED_WON,
    "closedlost": DealStage.CLOSED_LOST,
    "lost": DealStage.CLOSED_LOST,
    # Pipeline stages (generic and HubSpot default pipeline)
    "open": DealStage.OPEN,
    "new": DealStage.OPEN,
    "lead": DealStage.OPEN,
    "prospecting": DealStage.OPEN,
    "discovery": DealStage.OPEN,
    "qualification": DealStage.OPEN,
    "qualified": DealStage.OPEN,
    "demo": DealStage.OPEN,
    "proposal": DealStage.OPEN,
    "negotiation": DealStage.OPEN,
    "appointmentscheduled": DealStage.OPEN,
    "qualifiedtobuy": DealStage.OPEN,
    "presentationscheduled": DealStage.OPEN,
    "decisionmakerboughtin": DealStage.OPEN,
    "contractsent": DealStage.OPEN,
}


def normalize_stage(stage: Optional[str]) -> str:
    """Lowercase and strip whitespace, underscores and hyphens."""
    if not stage:
        return ""
    return _SEPARATORS.sub("", stage).lower()


def parse_stage(stage: Optional[str]) -> DealStage:
    """
    Map a free-text stage onto DealStage.

    Missing stages are OPEN. Unrecognized stages are also OPEN but logged,
    so a new CRM spelling shows up in the logs instead of silently
    never earning commission.
    """
    key = normalize_stage(stage)
    if not key:
        return DealStage.OPEN

    parsed = _STAGE_ALIASES.get(key)
    if parsed is None:
        logger.warning(f"Unrecognized deal stage '{stage}', treating as open")
        return DealStage.OPEN
    return parsed


def is_closed_won(stage: Optional[str]) -> bool:
    return parse_stage(stage) is DealStage.CLOSED_WON
