import logging

from ctapipe.containers import Field

from .core import ZDCContainer

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = ["QVectorContainer"]


class QVectorContainer(ZDCContainer):
    """Output record, emitted once per event.

    Rejected events carry null Q-vectors, ``is_selected`` False and iteration and
    step 0.
    """

    event_id = Field(-1, description="event index")
    run_number = Field(-1, description="run number")
    centrality = Field(0.0, description="centrality percentile")
    vx = Field(0.0, description="vertex x, mean vertex subtracted when available")
    vy = Field(0.0, description="vertex y, mean vertex subtracted when available")
    vz = Field(0.0, description="vertex z")
    qxa = Field(0.0, description="Qx of ZNA")
    qya = Field(0.0, description="Qy of ZNA")
    qxc = Field(0.0, description="Qx of ZNC")
    qyc = Field(0.0, description="Qy of ZNC")
    is_selected = Field(False, description="event accepted")
    iteration = Field(0, description="recentering iteration reached")
    step = Field(0, description="recentering step reached")

    @property
    def qvector(self):
        return [self.qxa, self.qya, self.qxc, self.qyc]
