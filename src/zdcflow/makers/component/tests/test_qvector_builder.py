import numpy as np
import pytest

from zdcflow.data import (
    AggregateList,
    Covariate,
    EventCovariates,
    SingleCovariateAggregate,
)
from zdcflow.makers.component import QVectorBuilder, VertexAccumulator
from zdcflow.utils import AggregateShapeError, CalibrationInvariantError
from zdcflow.utils.constants import ALPHA_ZDC

RUN_NUMBER = 544124

COVARIATES = EventCovariates(
    run=RUN_NUMBER, centrality=15.0, vx=0.005, vy=0.005, vz=2.0
)


class TestQVectorBuilder:
    def test_weights(self):
        np.testing.assert_allclose(
            QVectorBuilder.weights([10.0, 0.0, -2.0, 1.0]),
            [10.0**ALPHA_ZDC, 0.0, 0.0, 1.0],
        )

    def test_symmetric_sectors_cancel(self):
        assert QVectorBuilder.weights([10.0])[0] == pytest.approx(2.48, abs=0.01)
        np.testing.assert_allclose(
            QVectorBuilder.build(np.full(8, 10.0)), np.zeros(4), atol=1e-12
        )

    def test_one_sector_dominant(self):
        energies = np.array([20.0, 10, 10, 10, 20.0, 10, 10, 10])
        w1, w = 20.0**ALPHA_ZDC, 10.0**ALPHA_ZDC
        shift = 1.75 * (w1 - w) / (w1 + 3 * w)
        np.testing.assert_allclose(
            QVectorBuilder.build(energies), [shift, -shift, -shift, -shift]
        )

    def test_null_side(self):
        energies = np.array([0.0, 0, 0, 0, 10.0, 10, 10, 20])
        qvector = QVectorBuilder.build(energies)
        np.testing.assert_array_equal(qvector[:2], [0.0, 0.0])
        assert qvector[2] > 0
        assert qvector[3] > 0

    def test_correct_vertex(self, make_vertex_calibration):
        covariates = QVectorBuilder.correct_vertex(
            COVARIATES, make_vertex_calibration(vx=0.001, vy=-0.002)
        )
        assert covariates.vx == pytest.approx(0.004)
        assert covariates.vy == pytest.approx(0.007)
        assert covariates.vz == COVARIATES.vz
        assert covariates.run == RUN_NUMBER

    def test_correct_vertex_missing(self):
        with pytest.raises(CalibrationInvariantError) as error:
            QVectorBuilder.correct_vertex(COVARIATES, AggregateList())
        assert (error.value.iteration, error.value.step) == (0, 1)

    def test_correct_vertex_wrong_axis(self):
        aggregates = AggregateList(
            [
                SingleCovariateAggregate.uniform(name, Covariate.VZ, 2, -10, 10)
                for name in ["hvertex_vx", "hvertex_vy"]
            ]
        )
        with pytest.raises(AggregateShapeError):
            QVectorBuilder.correct_vertex(COVARIATES, aggregates)


class TestVertexAccumulator:
    def test_fill(self):
        accumulator = VertexAccumulator()
        assert accumulator.entries == 0
        accumulator.fill(COVARIATES)
        accumulator.fill(COVARIATES._replace(vx=0.007, vz=4.0))
        accumulator.fill(COVARIATES._replace(run=1))
        assert accumulator.entries == 3
        aggregates = accumulator.aggregates
        assert aggregates.names == ["hvertex_vx", "hvertex_vy", "hvertex_vz"]
        assert aggregates.find("hvertex_vx").value_at(RUN_NUMBER) == pytest.approx(
            0.006
        )
        assert aggregates.find("hvertex_vz").value_at(RUN_NUMBER) == pytest.approx(3.0)
        assert aggregates.find("hvertex_vz").axes[0].labels == [RUN_NUMBER, 1]
