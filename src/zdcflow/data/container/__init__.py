"""This file is used to import all the containerclasses in the data/container
folder."""

from .core import ZDCContainer
from .event_container import ZDCEventContainer
from .qvector_container import QVectorContainer

__all__ = [
    "QVectorContainer",
    "ZDCContainer",
    "ZDCEventContainer",
]
