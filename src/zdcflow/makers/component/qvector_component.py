import logging

import numpy as np
from ctapipe.core.traits import ComponentName, Integer, List, Unicode

from ...data.aggregate import EventCovariates
from ...data.calibration_store import CalibrationStore
from ...data.container import QVectorContainer, ZDCEventContainer
from ...utils import CalibrationInvariantError, FirstEventLog
from ...utils.constants import (
    CENTRALITY_MAX,
    CENTRALITY_MIN,
    ENERGY_CALIBRATION_KEY_DEFAULT,
    ENERGY_COORDINATE,
    MEAN_VERTEX_COORDINATE,
    MEAN_VERTEX_KEY_DEFAULT,
    MIN_ENTRIES_PER_AGGREGATE_DEFAULT,
    MIN_ENTRIES_PER_BIN_DEFAULT,
    N_STEPS,
    get_recentering_keys,
)
from .availability import CalibrationAvailabilityTable
from .core import ZDCComponent
from .gain_equalisation import GainEqualisation
from .qvector_builder import QVectorBuilder, VertexAccumulator
from .recentering import RecenteringCascade

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = ["ZDCQVectorComponent"]


def _recentering_keys_trait(iteration):
    return List(
        Unicode(),
        default_value=get_recentering_keys(iteration),
        maxlen=N_STEPS,
        help=f"store keys of the {N_STEPS} recentering steps of iteration "
        f"{iteration}, an empty key disables the step",
    ).tag(config=True)


class ZDCQVectorComponent(ZDCComponent):
    """Compute the calibrated ZDC Q-vectors of every event.

    For each event the centrality and the presence of the ZDC data are checked,
    the calibrations valid at the event timestamp are resolved, the tower gains
    are equalised, the raw Q-vector is built and recentered up to the deepest
    available calibration. A `QVectorContainer` is returned for every event,
    rejected events included.
    """

    min_entries_per_bin = Integer(
        default_value=MIN_ENTRIES_PER_BIN_DEFAULT,
        help="minimum number of entries in the bin of the joint correction, below "
        "it the correction is skipped and the event is not selected",
    ).tag(config=True)

    min_entries_per_aggregate = Integer(
        default_value=MIN_ENTRIES_PER_AGGREGATE_DEFAULT,
        help="minimum number of entries of a calibration table to be used",
    ).tag(config=True)

    energy_calibration_key = Unicode(
        default_value=ENERGY_CALIBRATION_KEY_DEFAULT,
        help="store key of the tower mean energies",
    ).tag(config=True)

    mean_vertex_key = Unicode(
        default_value=MEAN_VERTEX_KEY_DEFAULT,
        help="store key of the run mean vertex",
    ).tag(config=True)

    recentering_keys_iteration_1 = _recentering_keys_trait(1)
    recentering_keys_iteration_2 = _recentering_keys_trait(2)
    recentering_keys_iteration_3 = _recentering_keys_trait(3)
    recentering_keys_iteration_4 = _recentering_keys_trait(4)
    recentering_keys_iteration_5 = _recentering_keys_trait(5)

    calibration_store_type = ComponentName(
        CalibrationStore,
        default_value="LocalCalibrationStore",
        help="where the calibration tables are read from",
    ).tag(config=True)

    def __init__(self, config=None, parent=None, calibration_store=None, **kwargs):
        super().__init__(config=config, parent=parent, **kwargs)
        if calibration_store is None:
            calibration_store = CalibrationStore.from_name(
                self.calibration_store_type, parent=self
            )
        self.calibration_store = calibration_store
        self.first_event_log = FirstEventLog(self.log)
        self.availability = CalibrationAvailabilityTable(
            self.calibration_store,
            energy_key=self.energy_calibration_key,
            mean_vertex_key=self.mean_vertex_key,
            recentering_keys=self.recentering_keys,
            min_entries_per_aggregate=self.min_entries_per_aggregate,
            first_event_log=self.first_event_log,
        )
        self.cascade = RecenteringCascade(
            min_entries_per_bin=self.min_entries_per_bin,
            first_event_log=self.first_event_log,
        )
        self.vertex_accumulator = VertexAccumulator()
        self._n_events = 0
        self._n_selected = 0

    @property
    def recentering_keys(self):
        return [
            list(getattr(self, f"recentering_keys_iteration_{iteration}"))
            for iteration in range(1, 6)
        ]

    @property
    def n_events(self):
        return self._n_events

    @property
    def n_selected(self):
        return self._n_selected

    @staticmethod
    def _record(
        event, covariates, qvector=None, is_selected=False, iteration=0, step=0
    ):
        qvector = np.zeros(4) if qvector is None else qvector
        return QVectorContainer(
            event_id=int(event.event_id),
            run_number=int(covariates.run),
            centrality=float(covariates.centrality),
            vx=float(covariates.vx),
            vy=float(covariates.vy),
            vz=float(covariates.vz),
            qxa=float(qvector[0]),
            qya=float(qvector[1]),
            qxc=float(qvector[2]),
            qyc=float(qvector[3]),
            is_selected=bool(is_selected),
            iteration=int(iteration),
            step=int(step),
        )

    def __call__(self, event: ZDCEventContainer, *args, **kwargs) -> QVectorContainer:
        try:
            record = self._process(event)
        except CalibrationInvariantError as e:
            self.log.error(
                f"event {event.event_id} of run {event.run_number}: {e.message}"
            )
            raise e
        self._n_events += 1
        if record.is_selected:
            self._n_selected += 1
        return record

    def _process(self, event):
        covariates = EventCovariates(
            run=int(event.run_number),
            centrality=float(event.centrality),
            vx=float(event.vx),
            vy=float(event.vy),
            vz=float(event.vz),
        )

        if not CENTRALITY_MIN <= covariates.centrality < CENTRALITY_MAX:
            self.log.debug(
                f"event {event.event_id} rejected, centrality {covariates.centrality}"
            )
            return self._record(event, covariates)

        if not event.has_zdc:
            self.log.debug(f"event {event.event_id} rejected, no ZDC data")
            return self._record(event, covariates)

        snapshot = self.availability.resolve(int(event.timestamp))

        if not snapshot.is_usable(*MEAN_VERTEX_COORDINATE):
            self.first_event_log.warning(
                "No mean vertex found, vx and vy are not shifted, the run means "
                "are accumulated instead"
            )
            self.vertex_accumulator.fill(covariates)

        is_zna_hit, is_znc_hit = GainEqualisation.hit_sides(
            event.raw_energies, event.common_energies
        )
        if not (is_zna_hit and is_znc_hit):
            self.first_event_log.increment()
            return self._record(event, covariates)

        if not snapshot.is_usable(*ENERGY_COORDINATE):
            self.first_event_log.increment()
            return self._record(event, covariates)

        self.first_event_log.info("Start of the energy gain equalisation")
        mean_energies = GainEqualisation.mean_energies(
            snapshot.aggregates(*ENERGY_COORDINATE), covariates
        )
        calibrated = GainEqualisation.equalise(event.raw_energies, mean_energies)
        raw_qvector = QVectorBuilder.build(calibrated)

        if snapshot.is_usable(*MEAN_VERTEX_COORDINATE):
            self.first_event_log.info("Shifting vx and vy by the run mean vertex")
            covariates = QVectorBuilder.correct_vertex(
                covariates, snapshot.aggregates(*MEAN_VERTEX_COORDINATE)
            )

        result = self.cascade.run(raw_qvector, covariates, snapshot)
        self.first_event_log.increment()
        return self._record(
            event,
            covariates,
            qvector=result.qvector,
            is_selected=result.is_selected,
            iteration=result.iteration,
            step=result.step,
        )

    def finish(self, *args, **kwargs):
        """Return the accumulated mean vertex tables, None if nothing was filled."""
        self.log.info(
            f"{self._n_selected} events selected out of {self._n_events} processed"
        )
        if self.vertex_accumulator.entries == 0:
            return None
        self.log.info(
            f"{self.vertex_accumulator.entries} events accumulated in the mean vertex "
            f"tables"
        )
        return self.vertex_accumulator.aggregates
