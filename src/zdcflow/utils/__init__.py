from .error import (
    AggregateShapeError,
    CalibrationInvariantError,
    CalibrationStoreError,
    ZDCFlowError,
)
from .logger import FirstEventLog

__all__ = [
    "AggregateShapeError",
    "CalibrationInvariantError",
    "CalibrationStoreError",
    "FirstEventLog",
    "ZDCFlowError",
]
