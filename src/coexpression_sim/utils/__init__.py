"""Utility modules for the co-expression module simulator."""

from .seed import get_rng, spawn_seeds

__all__ = [
    "get_rng",
    "spawn_seeds",
]
