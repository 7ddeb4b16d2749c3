import numpy as np
import pytest

from zdcflow.data import (
    AggregateList,
    Covariate,
    EventCovariates,
    InMemoryCalibrationStore,
    SingleCovariateAggregate,
)
from zdcflow.makers.component import (
    CalibrationAvailabilityTable,
    CalibrationEntry,
    CalibrationSnapshot,
    CalibrationStatus,
    QVectorNodes,
    RecenteringCascade,
)
from zdcflow.utils import AggregateShapeError, CalibrationInvariantError
from zdcflow.utils.constants import RECENTERING_NAMES, get_recentering_keys

TIMESTAMP = 1_700_000_000_000
RAW = np.array([0.5, 0.6, 0.7, 0.8])
STEP_CORRECTION = np.array([0.01, 0.02, 0.03, 0.04])
COVARIATES = EventCovariates(run=544124, centrality=15.0, vx=0.0, vy=0.0, vz=0.0)


def resolve(store):
    table = CalibrationAvailabilityTable(
        store,
        recentering_keys=[get_recentering_keys(iteration) for iteration in range(1, 6)],
    )
    return table.resolve(TIMESTAMP)


class TestQVectorNodes:
    def test_input_node(self):
        assert QVectorNodes.input_node(1, 1) == QVectorNodes.RAW
        assert QVectorNodes.input_node(1, 3) == (1, 2)
        assert QVectorNodes.input_node(3, 1) == (2, 5)

    def test_copies(self):
        nodes = QVectorNodes(RAW)
        raw = nodes[QVectorNodes.RAW]
        raw[0] = 10.0
        assert nodes[QVectorNodes.RAW][0] == RAW[0]
        assert len(nodes) == 1


class TestRecenteringCascade:
    def test_no_recentering(self):
        snapshot = resolve(InMemoryCalibrationStore())
        result = RecenteringCascade().run(RAW, COVARIATES, snapshot)
        np.testing.assert_array_equal(result.qvector, RAW)
        assert (result.iteration, result.step) == (0, 0)
        assert result.is_selected

    def test_full_iteration(self, calibration_store):
        result = RecenteringCascade().run(RAW, COVARIATES, resolve(calibration_store))
        assert (result.iteration, result.step) == (1, 5)
        assert result.is_selected
        np.testing.assert_allclose(result.qvector, RAW - 15 * STEP_CORRECTION)
        np.testing.assert_allclose(result.nodes[(1, 1)], RAW - STEP_CORRECTION)
        np.testing.assert_allclose(result.nodes[(1, 3)], RAW - 6 * STEP_CORRECTION)
        assert len(result.nodes) == 6

    def test_partial_iteration(self, make_recentering_calibration):
        store = InMemoryCalibrationStore()
        keys = get_recentering_keys(1)
        for slot in range(3):
            store.put(
                keys[slot],
                make_recentering_calibration(slot, values=(slot + 1) * STEP_CORRECTION),
            )
        result = RecenteringCascade().run(RAW, COVARIATES, resolve(store))
        assert (result.iteration, result.step) == (1, 3)
        np.testing.assert_allclose(result.qvector, RAW - 6 * STEP_CORRECTION)
        assert (1, 4) not in result.nodes

    def test_second_iteration_input(
        self, calibration_store, make_recentering_calibration
    ):
        calibration_store.put(
            get_recentering_keys(2)[0],
            make_recentering_calibration(0, values=(0.1, 0.1, 0.1, 0.1)),
        )
        result = RecenteringCascade().run(RAW, COVARIATES, resolve(calibration_store))
        assert (result.iteration, result.step) == (2, 1)
        np.testing.assert_allclose(
            result.qvector, RAW - 15 * STEP_CORRECTION - 0.1
        )
        np.testing.assert_allclose(
            result.qvector, result.nodes[(1, 5)] - 0.1
        )

    def test_insufficient_joint_bin(
        self, calibration_store, make_recentering_calibration
    ):
        calibration_store.put(
            get_recentering_keys(1)[0],
            make_recentering_calibration(0, values=STEP_CORRECTION, count=5),
            valid_from=1,
        )
        result = RecenteringCascade(min_entries_per_bin=100).run(
            RAW, COVARIATES, resolve(calibration_store)
        )
        assert not result.is_selected
        assert (result.iteration, result.step) == (1, 5)
        np.testing.assert_allclose(result.nodes[(1, 1)], RAW)
        np.testing.assert_allclose(result.qvector, RAW - 14 * STEP_CORRECTION)

    def test_joint_bin_out_of_range(self, calibration_store):
        result = RecenteringCascade().run(
            RAW, COVARIATES._replace(vz=50.0), resolve(calibration_store)
        )
        assert not result.is_selected

    def test_min_entries_per_bin(self, calibration_store):
        result = RecenteringCascade(min_entries_per_bin=201).run(
            RAW, COVARIATES, resolve(calibration_store)
        )
        assert not result.is_selected
        result = RecenteringCascade(min_entries_per_bin=200).run(
            RAW, COVARIATES, resolve(calibration_store)
        )
        assert result.is_selected

    def test_missing_name_is_fatal(self):
        snapshot = CalibrationSnapshot(
            TIMESTAMP,
            {(1, 0): CalibrationEntry(CalibrationStatus.LOADED, AggregateList())},
            (1, 0),
        )
        with pytest.raises(CalibrationInvariantError) as error:
            RecenteringCascade().run(RAW, COVARIATES, snapshot)
        assert error.value.name == RECENTERING_NAMES[0][0]
        assert (error.value.iteration, error.value.step) == (1, 0)

    def test_wrong_covariate_is_fatal(self, calibration_store):
        aggregates = AggregateList()
        for name in RECENTERING_NAMES[1]:
            aggregate = SingleCovariateAggregate.uniform(name, Covariate.VX, 2, -1, 1)
            aggregate.fill(0.0, 1.0)
            aggregates.add(aggregate)
        calibration_store.put(get_recentering_keys(1)[1], aggregates, valid_from=1)
        with pytest.raises(AggregateShapeError):
            RecenteringCascade().run(RAW, COVARIATES, resolve(calibration_store))
