"""Description: This file is used to import all the classes from the makers
module."""

from .core import BaseZDCTool, EventsLoopZDCTool
from .qvector_makers import ZDCQVectorTool

__all__ = [
    "BaseZDCTool",
    "EventsLoopZDCTool",
    "ZDCQVectorTool",
]
