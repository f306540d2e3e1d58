"""
Technique Identifier Convention
===============================

MITRE ATT&CK writes sub-techniques as the parent technique ID followed by a
separator and a numeric suffix (T1055 -> T1055.001). Every place in the board
that needs to know "is this a sub-technique, and who is its parent" asks this
module, so the string convention is expressed exactly once.
"""

from typing import Optional

from ..config import SUB_TECHNIQUE_SEPARATOR


def parent_technique_id(identifier: str) -> Optional[str]:
    """
    Return the parent technique ID of a sub-technique, or None.

    Args:
        identifier: Any taxonomy identifier (tactic, technique or sub-technique)

    Returns:
        Optional[str]: The prefix before the separator when ``identifier`` denotes
        a sub-node with a non-empty parent distinct from itself, otherwise None

    Example:
        parent_technique_id("T1055.001")  # -> "T1055"
        parent_technique_id("T1055")      # -> None
        parent_technique_id("TA0005")     # -> None
    """
    if not identifier or SUB_TECHNIQUE_SEPARATOR not in identifier:
        return None

    parent = identifier.split(SUB_TECHNIQUE_SEPARATOR, 1)[0]
    if not parent or parent == identifier:
        return None
    return parent


def is_sub_technique(identifier: str) -> bool:
    """True if ``identifier`` denotes a sub-technique."""
    return parent_technique_id(identifier) is not None
