"""
Naming service: draft order generation.

Pure computation; persisting the order is the draft manager's job.
"""
import random
from typing import List, Optional, Sequence


def generate_draft_order(
    participants: Sequence[str],
    randomize: bool = True,
    rng: Optional[random.Random] = None
) -> List[str]:
    """
    Build a draft order from a roster.

    Logic:
    - duplicates are dropped, first occurrence wins
    - randomize=True shuffles (Fisher-Yates via random.shuffle)
    - randomize=False keeps roster order, handy for reproducible leagues

    Args:
        participants: roster participant ids
        randomize: shuffle or keep roster order
        rng: random source, the module generator when omitted

    Returns:
        New list, the input is never modified
    """
    order = list(dict.fromkeys(participants))
    if randomize:
        (rng or random).shuffle(order)
    return order
