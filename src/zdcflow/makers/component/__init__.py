from .availability import (
    CalibrationAvailabilityTable,
    CalibrationEntry,
    CalibrationSnapshot,
    CalibrationStatus,
)
from .core import ZDCComponent, get_valid_component
from .gain_equalisation import GainEqualisation
from .qvector_builder import QVectorBuilder, VertexAccumulator
from .qvector_component import ZDCQVectorComponent
from .recentering import QVectorNodes, RecenteringCascade, RecenteringResult

__all__ = [
    "CalibrationAvailabilityTable",
    "CalibrationEntry",
    "CalibrationSnapshot",
    "CalibrationStatus",
    "GainEqualisation",
    "QVectorBuilder",
    "QVectorNodes",
    "RecenteringCascade",
    "RecenteringResult",
    "VertexAccumulator",
    "ZDCComponent",
    "ZDCQVectorComponent",
    "get_valid_component",
]
