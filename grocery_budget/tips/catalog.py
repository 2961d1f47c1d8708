"""
Default tip catalog.

The tip tables ship as package data (default_tips.json) and are parsed
once into a frozen TipCatalog.
"""

import json
from functools import lru_cache
from importlib import resources

from grocery_budget.models.tips import TipCatalog


DEFAULT_TIPS_RESOURCE = "default_tips.json"


@lru_cache()
def load_tip_catalog() -> TipCatalog:
    """
    Load the bundled tip catalog (cached).

    Call load_tip_catalog.cache_clear() to reload if needed.
    """
    raw = (
        resources.files("grocery_budget.tips")
        .joinpath(DEFAULT_TIPS_RESOURCE)
        .read_text(encoding="utf-8")
    )
    return TipCatalog.model_validate(json.loads(raw))
