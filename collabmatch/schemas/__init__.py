"""Beanie ODM schemas for MongoDB collections."""

from .collab import Collab
from .collab_slot import CollabSlot, CollabTotals, StreamSnapshot
from .collab_status import CollabStatus, CollabType, StreamPhase
from .init import init_beanie_odm

__all__ = [
    "Collab",
    "CollabSlot",
    "CollabStatus",
    "CollabTotals",
    "CollabType",
    "StreamPhase",
    "StreamSnapshot",
    "init_beanie_odm",
]
