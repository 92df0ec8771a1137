"""In-memory rules layer for Tianming.

This package holds every game rule and operates purely on the dataclasses in
:mod:`models`.  It exposes:

* Dataclasses and enumerations describing the campaign (see :mod:`models`).
* Rule configuration objects (see :mod:`rules_config`).
* One resolver per turn phase (economy, events, battle, recruitment,
  leveling) plus the pre-game skill draft.
* The turn orchestrator in :mod:`tick`, which the async runtime drives.
"""

from . import (
    battle,
    draft,
    economy,
    effects,
    enums,
    events,
    formulas,
    leveling,
    models,
    recruitment,
    rules_config,
    tick,
)

__all__ = [
    "battle",
    "draft",
    "economy",
    "effects",
    "enums",
    "events",
    "formulas",
    "leveling",
    "models",
    "recruitment",
    "rules_config",
    "tick",
]
