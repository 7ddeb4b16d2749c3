import logging

import numpy as np
from ctapipe.containers import Field

from ...utils.constants import N_SECTORS
from .core import ZDCContainer

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = ["ZDCEventContainer"]


class ZDCEventContainer(ZDCContainer):
    """Per-event input of the Q-vector calibration.

    Fields:
        event_id (int): index of the event in its run.
        run_number (int): run the event belongs to.
        timestamp (int): validity timestamp in ms used to query the calibrations.
        centrality (float): centrality percentile.
        vx, vy, vz (float): primary vertex position.
        has_zdc (bool): whether the ZDC information is attached to the event.
        energy_sector_zna, energy_sector_znc (np.ndarray): the 4 sector energies
            of the A and C neutron calorimeters.
        energy_common_zna, energy_common_znc (float): common (sum) tower energies.
    """

    event_id = Field(-1, description="event index")
    run_number = Field(-1, description="run number")
    timestamp = Field(0, description="validity timestamp in ms")
    centrality = Field(np.nan, description="centrality percentile")
    vx = Field(0.0, description="vertex x position")
    vy = Field(0.0, description="vertex y position")
    vz = Field(0.0, description="vertex z position")
    has_zdc = Field(True, description="ZDC data present for the event")
    energy_sector_zna = Field(
        default_factory=lambda: np.zeros(N_SECTORS),
        type=np.ndarray,
        dtype=np.float64,
        ndim=1,
        description="ZNA sector energies",
    )
    energy_sector_znc = Field(
        default_factory=lambda: np.zeros(N_SECTORS),
        type=np.ndarray,
        dtype=np.float64,
        ndim=1,
        description="ZNC sector energies",
    )
    energy_common_zna = Field(0.0, description="ZNA common tower energy")
    energy_common_znc = Field(0.0, description="ZNC common tower energy")

    @property
    def raw_energies(self):
        """The 8 sector energies, ordered a1..a4, c1..c4."""
        return np.concatenate(
            [
                np.asarray(self.energy_sector_zna, dtype=float),
                np.asarray(self.energy_sector_znc, dtype=float),
            ]
        )

    @property
    def common_energies(self):
        return np.array(
            [self.energy_common_zna, self.energy_common_znc], dtype=float
        )
