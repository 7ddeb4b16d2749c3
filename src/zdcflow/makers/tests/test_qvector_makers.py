import numpy as np
import pytest
from ctapipe.core import ToolConfigurationError, run_tool
from traitlets.config import Config

from zdcflow.data import AggregateList, LocalCalibrationStore, write_events
from zdcflow.data.container import QVectorContainer
from zdcflow.makers import ZDCQVectorTool
from zdcflow.utils.constants import (
    ENERGY_CALIBRATION_KEY_DEFAULT,
    get_recentering_keys,
)

STEP_CORRECTION = np.array([0.01, 0.02, 0.03, 0.04])


class TestZDCQVectorTool:
    @pytest.fixture
    def calib_path(
        self, tmp_path, make_energy_calibration, make_recentering_calibration
    ):
        path = tmp_path / "calib"
        store = LocalCalibrationStore(root_path=path)
        store.put(ENERGY_CALIBRATION_KEY_DEFAULT, make_energy_calibration())
        for slot, key in enumerate(get_recentering_keys(1)):
            store.put(
                key,
                make_recentering_calibration(
                    slot, values=(slot + 1) * STEP_CORRECTION
                ),
            )
        return path

    @pytest.fixture
    def events_path(self, tmp_path, make_event):
        path = tmp_path / "events.h5"
        write_events(
            path,
            [
                make_event(event_id=0, vertex=(0.001, 0.0, 1.0)),
                make_event(event_id=1, vertex=(0.003, 0.0, 2.0)),
                make_event(event_id=2, zna=(30.0, 10.0, 10.0, 10.0)),
                make_event(event_id=3, centrality=95.0),
                make_event(event_id=4, common=(0.0, 40.0)),
            ],
        )
        return path

    def make_tool(self, tmp_path, calib_path, events_path, **kwargs):
        config = Config({"LocalCalibrationStore": {"root_path": str(calib_path)}})
        return ZDCQVectorTool(
            config=config,
            input_path=events_path,
            output_path=tmp_path / "out" / "qvectors.h5",
            **kwargs,
        )

    def test_tool(self, tmp_path, calib_path, events_path):
        vertex_path = tmp_path / "vmean.fits"
        tool = self.make_tool(
            tmp_path,
            calib_path,
            events_path,
            overwrite=True,
            vertex_accumulator_path=vertex_path,
        )
        tool.setup()
        tool.start()
        output = tool.finish(return_output_component=True)
        assert tool.n_traited_events == 5
        assert isinstance(output[0], AggregateList)

        records = list(
            QVectorContainer.from_hdf5(tool.output_path, table_name="qvectors")
        )
        assert [record.event_id for record in records] == [0, 1, 2, 3, 4]
        assert [bool(record.is_selected) for record in records] == [
            True,
            True,
            True,
            False,
            False,
        ]
        assert (records[0].iteration, records[0].step) == (1, 5)
        np.testing.assert_allclose(
            [records[0].qxa, records[0].qya, records[0].qxc, records[0].qyc],
            -15 * STEP_CORRECTION,
            atol=1e-12,
        )
        assert records[2].qxa > records[0].qxa
        assert (records[4].iteration, records[4].step) == (0, 0)
        assert records[4].qxa == 0.0

        vertex = AggregateList.read(vertex_path)
        assert vertex.find("hvertex_vx").entries == 4
        assert vertex.find("hvertex_vz").value_at(records[0].run_number) == (
            pytest.approx(0.75)
        )

    def test_max_events(self, tmp_path, calib_path, events_path):
        tool = self.make_tool(
            tmp_path, calib_path, events_path, overwrite=True, max_events=2
        )
        tool.setup()
        tool.start()
        tool.finish()
        records = list(
            QVectorContainer.from_hdf5(tool.output_path, table_name="qvectors")
        )
        assert len(records) == 2

    def test_existing_output(self, tmp_path, calib_path, events_path):
        output_path = tmp_path / "out" / "qvectors.h5"
        output_path.parent.mkdir()
        output_path.write_text("")
        tool = self.make_tool(tmp_path, calib_path, events_path)
        with pytest.raises(ToolConfigurationError):
            tool.setup()

    def test_missing_input(self):
        tool = ZDCQVectorTool()
        with pytest.raises(ToolConfigurationError):
            tool.setup()

    def test_run_tool(self, tmp_path, calib_path, events_path):
        output_path = tmp_path / "cli.h5"
        ret = run_tool(
            ZDCQVectorTool(),
            argv=[
                f"--input={events_path}",
                f"--output={output_path}",
                f"--calib={calib_path}",
                "--min-entries-per-bin=500",
                "--overwrite",
            ],
            cwd=tmp_path,
        )
        assert ret == 0
        records = list(QVectorContainer.from_hdf5(output_path, table_name="qvectors"))
        assert len(records) == 5
        assert not any(bool(record.is_selected) for record in records)
        np.testing.assert_allclose(
            [records[0].qxa, records[0].qya, records[0].qxc, records[0].qyc],
            -14 * STEP_CORRECTION,
            atol=1e-12,
        )
