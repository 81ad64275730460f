from .base import (
    PREDICTOR_REGISTRY,
    Predictor,
    create_predictor,
    register_predictor,
)
from .burg import BurgPredictor

__all__ = [
    "Predictor",
    "PREDICTOR_REGISTRY",
    "register_predictor",
    "create_predictor",
    "BurgPredictor",
]
