import random
from typing import Dict, Optional

from . import config
from .models import DiscoverQuery, Query, SearchQuery


def build_parameters(query: Query, rng: Optional[random.Random] = None) -> Dict[str, str]:
    """
    Request parameters for the openFDA event endpoint.

    Search matches the provider's brand_name index as-is (no fuzzing on our side).
    Discover asks for one fixed-size page at a random offset, drawn on every call;
    pass a seeded random.Random as rng to make it deterministic.
    """
    if isinstance(query, SearchQuery):
        return {"search": f"brand_name:{query.term}"}
    if isinstance(query, DiscoverQuery):
        offset = (rng or random).randrange(0, config.DISCOVER_MAX_OFFSET)
        return {"limit": str(config.DISCOVER_PAGE_SIZE), "skip": str(offset)}
    raise TypeError(f"unsupported query: {query!r}")
