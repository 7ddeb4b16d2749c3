import numpy as np
import pytest

from zdcflow.data import (
    AggregateList,
    BinnedAxis,
    Covariate,
    InMemoryCalibrationStore,
    JointAggregate,
    RunCentralityAggregate,
    SingleCovariateAggregate,
    ZDCEventContainer,
)
from zdcflow.utils.constants import (
    ENERGY_CALIBRATION_KEY_DEFAULT,
    ENERGY_NAMES,
    MEAN_VERTEX_KEY_DEFAULT,
    RECENTERING_NAMES,
    VERTEX_NAMES,
    get_recentering_keys,
)

RUN_NUMBER = 544124
TIMESTAMP = 1_700_000_000_000

# binning of the single covariate recentering tables
SINGLE_BINNING = {
    1: (Covariate.CENTRALITY, 90, 0.0, 90.0),
    2: (Covariate.VX, 10, -0.05, 0.05),
    3: (Covariate.VY, 10, -0.05, 0.05),
    4: (Covariate.VZ, 20, -10.0, 10.0),
}


def _filled(aggregate_class, name, axes, value, count):
    counts = np.full(tuple(axis.nbins for axis in axes), count, dtype=np.int64)
    return aggregate_class(name, axes, sums=value * counts, counts=counts)


@pytest.fixture
def make_event():
    def _make_event(
        event_id=0,
        run_number=RUN_NUMBER,
        timestamp=TIMESTAMP,
        centrality=15.0,
        vertex=(0.0, 0.0, 0.0),
        zna=(10.0, 10.0, 10.0, 10.0),
        znc=(10.0, 10.0, 10.0, 10.0),
        common=(40.0, 40.0),
        has_zdc=True,
    ):
        return ZDCEventContainer(
            event_id=event_id,
            run_number=run_number,
            timestamp=timestamp,
            centrality=centrality,
            vx=vertex[0],
            vy=vertex[1],
            vz=vertex[2],
            has_zdc=has_zdc,
            energy_sector_zna=np.array(zna, dtype=np.float64),
            energy_sector_znc=np.array(znc, dtype=np.float64),
            energy_common_zna=common[0],
            energy_common_znc=common[1],
        )

    return _make_event


@pytest.fixture
def make_energy_calibration():
    """Tower mean energies, common towers at ``common`` and sectors at ``sector``.
    With common = 4 * sector the calibrated energies equal the raw ones."""

    def _make(runs=(RUN_NUMBER,), common=40.0, sector=10.0, count=10):
        aggregates = AggregateList()
        for tower, name in enumerate(ENERGY_NAMES):
            axes = RunCentralityAggregate.create(name, runs=runs).axes
            value = common if tower in (0, 5) else sector
            aggregates.add(_filled(RunCentralityAggregate, name, axes, value, count))
        return aggregates

    return _make


@pytest.fixture
def make_vertex_calibration():
    def _make(runs=(RUN_NUMBER,), vx=0.001, vy=-0.002, count=10):
        aggregates = AggregateList()
        for name, value in zip(VERTEX_NAMES, [vx, vy]):
            axes = [BinnedAxis.labelled(Covariate.RUN, runs)]
            aggregates.add(
                _filled(SingleCovariateAggregate, name, axes, value, count)
            )
        return aggregates

    return _make


@pytest.fixture
def make_recentering_calibration():
    """Constant recentering corrections ``values`` (QXA, QYA, QXC, QYC) for the
    step slot ``slot``, every bin holding ``count`` entries."""

    def _make(slot, values=(0.1, 0.2, 0.3, 0.4), count=200):
        aggregates = AggregateList()
        for name, value in zip(RECENTERING_NAMES[slot], values):
            if slot == 0:
                axes = JointAggregate.create(name).axes
                aggregates.add(_filled(JointAggregate, name, axes, value, count))
            else:
                axes = [BinnedAxis.uniform(*SINGLE_BINNING[slot])]
                aggregates.add(
                    _filled(SingleCovariateAggregate, name, axes, value, count)
                )
        return aggregates

    return _make


@pytest.fixture
def calibration_store(
    make_energy_calibration, make_vertex_calibration, make_recentering_calibration
):
    """Store with energy and vertex calibrations and the 5 steps of iteration 1,
    the corrections of step slot s being ``(s + 1) * [0.01, 0.02, 0.03, 0.04]``."""
    store = InMemoryCalibrationStore()
    store.put(ENERGY_CALIBRATION_KEY_DEFAULT, make_energy_calibration())
    store.put(MEAN_VERTEX_KEY_DEFAULT, make_vertex_calibration())
    for slot, key in enumerate(get_recentering_keys(1)):
        store.put(
            key,
            make_recentering_calibration(
                slot, values=(slot + 1) * np.array([0.01, 0.02, 0.03, 0.04])
            ),
        )
    return store
