"""
Shared data structures for the repair core: patches, their thread-safe
registry, the read-through patched views, and processing settings.
"""

from .models import MINIMAL_PREDICTION_ERROR, DamageEvent, Patch, PatchKind, Regenerable
from .patch_collection import PatchCollection
from .patcher import Patcher
from .settings import RepairSettings

__all__ = [
    "DamageEvent",
    "MINIMAL_PREDICTION_ERROR",
    "Patch",
    "PatchCollection",
    "PatchKind",
    "Patcher",
    "Regenerable",
    "RepairSettings",
]
