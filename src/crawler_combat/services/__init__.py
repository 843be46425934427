"""Concrete collaborators and encounter wiring."""

from .encounters import EncounterResult, build_session, choose_action, run_encounter
from .loot import DatabaseLootGenerator
from .persistence import DatabasePersistenceSink

__all__ = [
    "DatabasePersistenceSink",
    "DatabaseLootGenerator",
    "EncounterResult",
    "build_session",
    "choose_action",
    "run_encounter",
]
