from __future__ import annotations

from typing import Dict, Protocol, Type

import numpy as np

from shared.settings import RepairSettings


class Predictor(Protocol):
    name: str

    @property
    def input_data_size(self) -> int:
        """Number of history samples `get_forward` expects."""
        ...

    def get_forward(self, history: np.ndarray) -> float:
        """Estimate the sample that follows `history`."""
        ...


PREDICTOR_REGISTRY: Dict[str, Type[Predictor]] = {}


def register_predictor(cls: Type[Predictor]) -> Type[Predictor]:
    if not hasattr(cls, "name"):
        raise ValueError(f"Predictor {cls} must have a 'name' attribute")
    PREDICTOR_REGISTRY[cls.name] = cls
    return cls


def create_predictor(settings: RepairSettings) -> Predictor:
    try:
        cls = PREDICTOR_REGISTRY[settings.predictor]
    except KeyError:
        raise ValueError(f"Unknown predictor '{settings.predictor}'") from None
    return cls(settings.coefficients_number, settings.history_length_samples)
