"""
Fixed tier naming rules.

This file exists to keep the renaming convention in one place.
"""

LIST_SUFFIX = "List"
LABEL_KEY = "Label"

TIER_PREFIX = "Tier"
BRANCHES_NAME = "Branches"
BRANCHES_KEY = BRANCHES_NAME + LIST_SUFFIX  # "BranchesList"

STRUCTURE_SEPARATOR = " → "

# Deepest container nesting accepted over HTTP; response encoding recurses per level.
MAX_NESTING_DEPTH = 100


def tier_name(position: int) -> str:
    """Canonical name for the 1-based tier *position*, e.g. ``Tier2``."""
    return f"{TIER_PREFIX}{position}"


def tier_key(position: int) -> str:
    """Canonical mapping key for the 1-based tier *position*, e.g. ``Tier2_List``."""
    return f"{tier_name(position)}_{LIST_SUFFIX}"
