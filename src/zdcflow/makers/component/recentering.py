import logging
from collections import namedtuple

import numpy as np

from ...data.aggregate import (
    AggregateList,
    Covariate,
    EventCovariates,
    JointAggregate,
    SingleCovariateAggregate,
)
from ...utils import AggregateShapeError, CalibrationInvariantError, FirstEventLog
from ...utils.constants import MIN_ENTRIES_PER_BIN_DEFAULT, N_STEPS, RECENTERING_NAMES
from .availability import CalibrationSnapshot

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = ["QVectorNodes", "RecenteringCascade", "RecenteringResult"]

# covariate each recentering slot is binned in, slot 0 is the joint correction
SLOT_COVARIATES = [
    JointAggregate.COVARIATES,
    (Covariate.CENTRALITY,),
    (Covariate.VX,),
    (Covariate.VY,),
    (Covariate.VZ,),
]


class QVectorNodes:
    """Q-vectors materialised along the cascade, keyed by (iteration, step).

    Node (0, 0) is the raw vector, node (i, s) with s in 1..5 is the output of
    step s of iteration i. Node (i, 5) feeds node (i + 1, 1).
    """

    RAW = (0, 0)

    def __init__(self, raw_qvector):
        self._nodes = {self.RAW: np.array(raw_qvector, dtype=float)}

    @staticmethod
    def input_node(iteration, step):
        if step == 1:
            return QVectorNodes.RAW if iteration == 1 else (iteration - 1, N_STEPS)
        return (iteration, step - 1)

    def __getitem__(self, node):
        return self._nodes[tuple(node)].copy()

    def __setitem__(self, node, qvector):
        self._nodes[tuple(node)] = np.array(qvector, dtype=float)

    def __contains__(self, node):
        return tuple(node) in self._nodes

    def __len__(self):
        return len(self._nodes)

    def keys(self):
        return list(self._nodes.keys())


RecenteringResult = namedtuple(
    "RecenteringResult", "qvector iteration step is_selected nodes"
)


class RecenteringCascade:
    """Walk the recentering cascade up to the frontier of a calibration snapshot.

    Every node subtracts, per component, the mean found at the event's bin of the
    aggregate of its slot. On the joint step a bin with fewer than
    ``min_entries_per_bin`` entries is not subtracted and unselects the event.
    """

    def __init__(
        self, min_entries_per_bin=MIN_ENTRIES_PER_BIN_DEFAULT, first_event_log=None
    ):
        self.min_entries_per_bin = min_entries_per_bin
        self.first_event_log = (
            FirstEventLog(log) if first_event_log is None else first_event_log
        )

    def _corrections(self, iteration, slot, aggregates: AggregateList, covariates):
        corrections = np.zeros(len(RECENTERING_NAMES[slot]))
        is_selected = True
        expected_class = JointAggregate if slot == 0 else SingleCovariateAggregate
        for component, name in enumerate(RECENTERING_NAMES[slot]):
            aggregate = aggregates.find(name)
            if aggregate is None:
                raise CalibrationInvariantError(
                    f"{name} not available.. Abort..",
                    iteration=iteration,
                    step=slot,
                    name=name,
                )
            if (
                not isinstance(aggregate, expected_class)
                or aggregate.covariates != SLOT_COVARIATES[slot]
            ):
                raise AggregateShapeError(
                    f"{name} is a {aggregate.__class__.__name__} in "
                    f"{[cov.value for cov in aggregate.covariates]}, expected a "
                    f"{expected_class.__name__} in "
                    f"{[cov.value for cov in SLOT_COVARIATES[slot]]}",
                    iteration=iteration,
                    step=slot,
                    name=name,
                )
            if (
                slot == 0
                and aggregate.entry_count_for(covariates) < self.min_entries_per_bin
            ):
                log.debug(
                    f"{aggregate.entry_count_for(covariates)} entries in the bin of "
                    f"{name}, not used"
                )
                is_selected = False
                continue
            corrections[component] = aggregate.value_for(covariates)
        return corrections, is_selected

    def run(
        self,
        raw_qvector,
        covariates: EventCovariates,
        snapshot: CalibrationSnapshot,
    ) -> RecenteringResult:
        nodes = QVectorNodes(raw_qvector)
        if snapshot.at_iteration == 0:
            self.first_event_log.warning(
                "Calibration files missing, output created with the Q-vectors "
                "right after the energy gain equalisation"
            )
            return RecenteringResult(nodes[QVectorNodes.RAW], 0, 0, True, nodes)

        is_selected = True
        for iteration, slot in snapshot.recentering_path():
            node = (iteration, slot + 1)
            corrections, selected = self._corrections(
                iteration, slot, snapshot.aggregates(iteration, slot), covariates
            )
            is_selected = is_selected and selected
            nodes[node] = nodes[QVectorNodes.input_node(*node)] - corrections

        self.first_event_log.info(
            f"Output created with the Q-vectors at iteration "
            f"{snapshot.at_iteration} and step {snapshot.at_step}"
        )
        return RecenteringResult(
            nodes[snapshot.frontier_node],
            snapshot.at_iteration,
            snapshot.at_step,
            is_selected,
            nodes,
        )
