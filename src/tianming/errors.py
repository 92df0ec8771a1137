"""Exceptions raised by the Tianming simulation."""

from __future__ import annotations


class TianmingError(Exception):
    """Base class for every error raised by the package."""


class ContentError(TianmingError):
    """Static content is missing, malformed or internally inconsistent."""


class PhaseTransitionError(TianmingError):
    """The game phase machine was asked to skip or reverse a phase."""


class GameNotStartedError(TianmingError):
    """A runtime command arrived while no game is live."""
