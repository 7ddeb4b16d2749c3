import logging
from abc import abstractmethod

from ctapipe.core import Component

from ...data.container import ZDCEventContainer

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = [
    "ZDCComponent",
    "get_valid_component",
]


def get_valid_component():
    return ZDCComponent.non_abstract_subclasses()


class ZDCComponent(Component):
    """The base class for the per-event ZDC components.

    ``__call__`` is applied on every event and may return a container to be
    written as one row of the output, ``finish`` is called once at the end of the
    events loop.
    """

    @abstractmethod
    def __call__(self, event: ZDCEventContainer, *args, **kwargs):
        pass

    @abstractmethod
    def finish(self, *args, **kwargs):
        pass
