"""Seedable randomness for dealing and orientation draws."""

from __future__ import annotations

import hashlib
import random
from typing import Optional, Union

SeedLike = Union[int, str, None]


def seeded_random(seed: SeedLike = None, salt: str = "") -> random.Random:
    """Create a random.Random for dealing cards.

    Args:
        seed: None for an OS-seeded generator, an int used as-is, or a string
              hashed together with ``salt`` into a deterministic seed
        salt: Optional salt mixed into string seeds (e.g. a session id)

    Returns:
        random.Random instance owned by the caller
    """
    if seed is None:
        return random.Random()
    if isinstance(seed, int) and not salt:
        return random.Random(seed)

    combined = f"{seed}{salt}"
    digest = hashlib.sha256(combined.encode("utf-8")).hexdigest()
    return random.Random(int(digest, 16) & ((1 << 31) - 1))


def coin_flip(rng: random.Random, probability: float = 0.5) -> bool:
    """Return True with the given probability."""
    return rng.random() < probability


def ensure_rng(rng: Optional[random.Random]) -> random.Random:
    return rng if rng is not None else random.Random()
