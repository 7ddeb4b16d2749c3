import logging
import os
import pathlib

from ctapipe.core.traits import ComponentNameList, Path

from ..data.aggregate import AggregateList
from .component import ZDCComponent
from .core import EventsLoopZDCTool

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = ["ZDCQVectorTool", "main"]


class ZDCQVectorTool(EventsLoopZDCTool):
    """Compute the calibrated ZDC Q-vectors of the events of an input file, with
    the deepest recentering available in the calibration store."""

    name = "ZDCQVector"

    description = __doc__

    aliases = {
        **EventsLoopZDCTool.aliases,
        "calib": "LocalCalibrationStore.root_path",
        "min-entries-per-bin": "ZDCQVectorComponent.min_entries_per_bin",
        "vertex-output": "ZDCQVectorTool.vertex_accumulator_path",
    }

    componentsList = ComponentNameList(
        ZDCComponent,
        default_value=["ZDCQVectorComponent"],
        help="List of Component names to be apply, the order will be respected",
    ).tag(config=True)

    output_path = Path(
        help="output filename",
        default_value=pathlib.Path(
            f"{os.environ.get('ZDCFLOW_DATA', '/tmp')}/zdcflow/qvectors.h5"
        ),
        directory_ok=False,
    ).tag(config=True)

    vertex_accumulator_path = Path(
        help="FITS file where the run mean vertex tables accumulated while no mean "
        "vertex calibration is available are written",
        default_value=None,
        allow_none=True,
        directory_ok=False,
    ).tag(config=True)

    table_name = "qvectors"

    def finish(self, return_output_component=False, *args, **kwargs):
        output = super().finish(True, *args, **kwargs)
        for _output in output:
            if isinstance(_output, AggregateList):
                self._write_vertex_accumulator(_output)
        if return_output_component:
            return output

    def _write_vertex_accumulator(self, aggregates: AggregateList):
        if self.vertex_accumulator_path is None:
            self.log.warning(
                "mean vertex tables were accumulated but vertex_accumulator_path is "
                "not set, they are not written"
            )
            return
        os.makedirs(self.vertex_accumulator_path.parent, exist_ok=True)
        aggregates.write(self.vertex_accumulator_path, overwrite=self.overwrite)
        self.log.info(f"mean vertex tables written to {self.vertex_accumulator_path}")


def main():
    """Run the ZDCQVectorTool."""
    tool = ZDCQVectorTool()
    tool.run()


if __name__ == "__main__":
    main()
