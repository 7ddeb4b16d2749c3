import logging

import numpy as np

from ...data.aggregate import AggregateList, EventCovariates, RunCentralityAggregate
from ...utils import AggregateShapeError, CalibrationInvariantError
from ...utils.constants import ENERGY_COORDINATE, ENERGY_NAMES, N_SECTORS

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = ["GainEqualisation"]


class GainEqualisation:
    """Equalise the gains of the 8 sector towers relative to the common towers.

    The calibrated energy of a sector is
    ``raw * (0.25 * <E_common>) / <E_sector>``, the means being read at the
    (run, centrality) bin of the event.
    """

    @staticmethod
    def hit_sides(raw_energies, common_energies):
        """A side is hit when its 4 sectors and its common tower are strictly
        positive.

        Returns
        -------
        (bool, bool)
            ZNA and ZNC hit flags
        """
        raw_energies = np.asarray(raw_energies, dtype=float)
        common_energies = np.asarray(common_energies, dtype=float)
        return tuple(
            bool(
                np.all(raw_energies[side * N_SECTORS : (side + 1) * N_SECTORS] > 0)
                and common_energies[side] > 0
            )
            for side in range(2)
        )

    @staticmethod
    def mean_energies(aggregates: AggregateList, covariates: EventCovariates):
        """The 10 tower mean energies (common A, A1..A4, common C, C1..C4) at the
        event's (run, centrality) bin."""
        means = np.zeros(len(ENERGY_NAMES))
        for tower, name in enumerate(ENERGY_NAMES):
            aggregate = aggregates.find(name)
            if aggregate is None:
                raise CalibrationInvariantError(
                    f"{name} not available.. Abort..",
                    iteration=ENERGY_COORDINATE[0],
                    step=ENERGY_COORDINATE[1],
                    name=name,
                )
            if not isinstance(aggregate, RunCentralityAggregate):
                raise AggregateShapeError(
                    f"{name} is a {aggregate.__class__.__name__}, expected a "
                    f"RunCentralityAggregate",
                    iteration=ENERGY_COORDINATE[0],
                    step=ENERGY_COORDINATE[1],
                    name=name,
                )
            means[tower] = aggregate.value_for(covariates)
        return means

    @staticmethod
    def equalise(raw_energies, mean_energies):
        """Calibrated energies of the 8 sector towers, 0 where the sector mean is
        not positive."""
        raw_energies = np.asarray(raw_energies, dtype=float)
        mean_energies = np.asarray(mean_energies, dtype=float)
        sector_means = np.concatenate([mean_energies[1:5], mean_energies[6:10]])
        common_means = np.repeat([mean_energies[0], mean_energies[5]], N_SECTORS)
        valid = sector_means > 0
        if not np.all(valid):
            log.debug(f"non positive sector mean energies: {sector_means}")
        return np.where(
            valid,
            raw_energies * (0.25 * common_means) / np.where(valid, sector_means, 1.0),
            0.0,
        )
