"""Chat colour assignment."""

import random
from collections.abc import Sequence

from ..config.models import DEFAULT_COLOR_PALETTE


def pick_color(palette: Sequence[str] | None = None, rng: random.Random | None = None) -> str:
    """Return a uniformly drawn colour from the palette (not cryptographic)."""
    choices = palette or DEFAULT_COLOR_PALETTE
    return (rng or random).choice(list(choices))
