"""Description: This file is used to import all the classes and functions
from the data module."""

from .aggregate import (
    Aggregate,
    AggregateList,
    BinnedAxis,
    Covariate,
    EventCovariates,
    JointAggregate,
    RunCentralityAggregate,
    SingleCovariateAggregate,
)
from .calibration_store import (
    CalibrationStore,
    InMemoryCalibrationStore,
    LocalCalibrationStore,
)
from .container import (
    QVectorContainer,
    ZDCContainer,
    ZDCEventContainer,
)
from .event_source import ZDCEventSource, write_events

__all__ = [
    "Aggregate",
    "AggregateList",
    "BinnedAxis",
    "CalibrationStore",
    "Covariate",
    "EventCovariates",
    "InMemoryCalibrationStore",
    "JointAggregate",
    "LocalCalibrationStore",
    "QVectorContainer",
    "RunCentralityAggregate",
    "SingleCovariateAggregate",
    "ZDCContainer",
    "ZDCEventContainer",
    "ZDCEventSource",
    "write_events",
]
