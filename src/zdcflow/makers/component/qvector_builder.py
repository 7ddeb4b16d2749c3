import logging

import numpy as np

from ...data.aggregate import (
    AggregateList,
    Covariate,
    EventCovariates,
    SingleCovariateAggregate,
)
from ...utils import AggregateShapeError, CalibrationInvariantError
from ...utils.constants import (
    ALPHA_ZDC,
    MEAN_VERTEX_COORDINATE,
    N_SECTORS,
    PX_ZDC,
    PY_ZDC,
    VERTEX_ACCUMULATOR_NAMES,
    VERTEX_NAMES,
)

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = ["QVectorBuilder", "VertexAccumulator"]


class QVectorBuilder:
    """Build the raw Q-vector of each side as the centre of gravity of the sector
    positions, weighted by ``energy ** alpha``.

    The Q-vector is ordered ``[QXA, QYA, QXC, QYC]``.
    """

    @staticmethod
    def weights(calibrated_energies, alpha=ALPHA_ZDC):
        energies = np.asarray(calibrated_energies, dtype=float)
        return np.where(
            energies > 0, np.power(np.clip(energies, 0.0, None), alpha), 0.0
        )

    @staticmethod
    def build(calibrated_energies, alpha=ALPHA_ZDC):
        weights = QVectorBuilder.weights(calibrated_energies, alpha)
        qvector = np.zeros(4)
        for side in range(2):
            side_weights = weights[side * N_SECTORS : (side + 1) * N_SECTORS]
            sum_weights = side_weights.sum()
            # ZNA sees the x axis mirrored
            px = -np.asarray(PX_ZDC) if side == 0 else np.asarray(PX_ZDC)
            if sum_weights > 0:
                qvector[2 * side] = np.sum(side_weights * px) / sum_weights
                qvector[2 * side + 1] = np.sum(side_weights * PY_ZDC) / sum_weights
            else:
                log.debug(f"no weight on side {'AC'[side]}, null Q-vector")
        return qvector

    @staticmethod
    def correct_vertex(covariates: EventCovariates, aggregates: AggregateList):
        """Shift vx and vy by their run means."""
        shifts = []
        for name in VERTEX_NAMES:
            aggregate = aggregates.find(name)
            if aggregate is None:
                raise CalibrationInvariantError(
                    f"{name} not available.. Abort..",
                    iteration=MEAN_VERTEX_COORDINATE[0],
                    step=MEAN_VERTEX_COORDINATE[1],
                    name=name,
                )
            if (
                not isinstance(aggregate, SingleCovariateAggregate)
                or aggregate.covariates != (Covariate.RUN,)
            ):
                raise AggregateShapeError(
                    f"{name} must be a SingleCovariateAggregate in run",
                    iteration=MEAN_VERTEX_COORDINATE[0],
                    step=MEAN_VERTEX_COORDINATE[1],
                    name=name,
                )
            shifts.append(aggregate.value_for(covariates))
        return covariates._replace(
            vx=covariates.vx - shifts[0], vy=covariates.vy - shifts[1]
        )


class VertexAccumulator:
    """Per-run vertex means, filled while no mean vertex calibration exists so
    that it can be produced from the output."""

    def __init__(self):
        self._aggregates = AggregateList(
            [
                SingleCovariateAggregate.per_run(name)
                for name in VERTEX_ACCUMULATOR_NAMES
            ]
        )

    @property
    def entries(self):
        return self._aggregates.find(VERTEX_ACCUMULATOR_NAMES[0]).entries

    @property
    def aggregates(self):
        return self._aggregates

    def fill(self, covariates: EventCovariates):
        for name, value in zip(
            VERTEX_ACCUMULATOR_NAMES, [covariates.vx, covariates.vy, covariates.vz]
        ):
            self._aggregates.find(name).fill(covariates.run, value)
