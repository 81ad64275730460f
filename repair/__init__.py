"""Detection and repair of impulsive damage in single-channel audio."""

from .analyzer import Analyzer, AveragedMaxErrorAnalyzer
from .channel import Channel
from .detector import DamagedSampleDetector
from .patch_maker import PatchMaker
from .prediction import PREDICTOR_REGISTRY, BurgPredictor, Predictor, create_predictor, register_predictor
from .regenerator import Regenerator
from .scanner import ScanResult, Scanner, ScannerTools
from shared.models import MINIMAL_PREDICTION_ERROR, Patch, PatchKind
from shared.settings import RepairSettings

__all__ = [
    "Analyzer",
    "AveragedMaxErrorAnalyzer",
    "BurgPredictor",
    "Channel",
    "DamagedSampleDetector",
    "MINIMAL_PREDICTION_ERROR",
    "PREDICTOR_REGISTRY",
    "Patch",
    "PatchKind",
    "PatchMaker",
    "Predictor",
    "Regenerator",
    "RepairSettings",
    "ScanResult",
    "Scanner",
    "ScannerTools",
    "create_predictor",
    "register_predictor",
]
