"""Utility functions for the Tianming simulation."""

from tianming.utils.rng import (
    check_probability,
    clamp,
    random_choice,
    random_float,
    random_int,
    random_percent,
    random_sample,
    weighted_choice,
)

__all__ = [
    "check_probability",
    "clamp",
    "random_choice",
    "random_float",
    "random_int",
    "random_percent",
    "random_sample",
    "weighted_choice",
]
