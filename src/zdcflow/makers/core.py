import logging
import os
import pathlib
from datetime import datetime

import numpy as np
from ctapipe.core import Component, Provenance, Tool, ToolConfigurationError
from ctapipe.core.container import FieldValidationError
from ctapipe.core.traits import (
    Bool,
    ComponentNameList,
    Integer,
    Path,
    classes_with_traits,
    flag,
)
from ctapipe.io import HDF5TableWriter
from tables.exceptions import HDF5ExtError
from tqdm.auto import tqdm
from traitlets import default

from ..data.calibration_store import CalibrationStore
from ..data.container import ZDCContainer
from ..data.event_source import ZDCEventSource
from .component import ZDCComponent, get_valid_component

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = [
    "BaseZDCTool",
    "EventsLoopZDCTool",
]

OUTPUT_GROUP = "data"


class BaseZDCTool(Tool):
    """Mother class of the ZDC tools, the role of the tools is to run the
    components over the events of an input file."""

    name = "BaseZDC"

    progress_bar = Bool(
        help="show progress bar during processing", default_value=False
    ).tag(config=True)

    @default("provenance_log")
    def _default_provenance_log(self):
        return (
            f"{os.environ.get('ZDCFLOW_LOG', '/tmp')}/"
            f"{self.name}_{os.getpid()}_{datetime.now()}.provenance.log"
        )

    @default("log_file")
    def _default_log_file(self):
        return (
            f"{os.environ.get('ZDCFLOW_LOG', '/tmp')}/"
            f"{self.name}_{os.getpid()}_{datetime.now()}.log"
        )

    @staticmethod
    def load_events(input_path, max_events: int = None) -> ZDCEventSource:
        """Static method to open the events of ``input_path``.

        Parameters
        ----------
        input_path : str or pathlib.Path
            HDF5 file holding the ``ZDCEventContainer`` rows
        max_events : int, optional
            max of events to be loaded. Defaults to None, to load everything.

        Returns
        -------
        ZDCEventSource
        """
        log.info(f"{str(input_path)} will be loaded")
        return ZDCEventSource(input_url=input_path, max_events=max_events)


class EventsLoopZDCTool(BaseZDCTool):
    """
    Apply a list of components to every event of an input file and write, one row
    per event, the containers they return.

    Example Usage:
        tool = EventsLoopZDCTool(input_path="events.h5", output_path="out.h5")
        tool.setup()
        tool.start()
        tool.finish()
    """

    name = "EventsLoopZDC"

    description = __doc__
    examples = """zdcflow-qvectors -i events.h5 -o qvectors.h5 --overwrite"""

    aliases = {
        ("i", "input"): "EventsLoopZDCTool.input_path",
        ("o", "output"): "EventsLoopZDCTool.output_path",
        ("m", "max-events"): "EventsLoopZDCTool.max_events",
    }

    flags = {
        "overwrite": (
            {"EventsLoopZDCTool": {"overwrite": True}},
            "Overwrite output file if it exists",
        ),
        **flag(
            "progress",
            "EventsLoopZDCTool.progress_bar",
            "show a progress bar during event processing",
            "don't show a progress bar during event processing",
        ),
    }

    classes = (
        [HDF5TableWriter]
        + classes_with_traits(ZDCComponent)
        + classes_with_traits(CalibrationStore)
    )

    input_path = Path(
        help="HDF5 file holding the events to be processed",
        default_value=None,
        allow_none=True,
        exists=True,
        directory_ok=False,
    ).tag(config=True)

    output_path = Path(
        help="output filename",
        default_value=pathlib.Path(
            f"{os.environ.get('ZDCFLOW_DATA', '/tmp')}/zdcflow/{name}.h5"
        ),
        directory_ok=False,
    ).tag(config=True)

    max_events = Integer(
        help="maximum number of events to be loaded",
        default_value=None,
        allow_none=True,
    ).tag(config=True)

    overwrite = Bool(
        help="overwrite the output file if it exists", default_value=False
    ).tag(config=True)

    componentsList = ComponentNameList(
        ZDCComponent,
        help="List of Component names to be apply, the order will be respected",
    ).tag(config=True)

    table_name = "output"

    def _load_eventsource(self, *args, **kwargs):
        self.log.debug("loading event source")
        self._event_source = self.enter_context(
            self.load_events(self.input_path, self.max_events)
        )

    def _init_writer(self, group_name=OUTPUT_GROUP):
        if hasattr(self, "writer"):
            self.writer.close()

        self.log.info("initialization of writer")
        if os.path.exists(self.output_path):
            if self.overwrite:
                log.info(f"overwrite set to true, removing file {self.output_path}")
                os.remove(self.output_path)
            else:
                raise ToolConfigurationError(
                    f"file {self.output_path} does exist,\n set overwrite to True "
                    f"if you want to overwrite"
                )
        try:
            os.makedirs(self.output_path.parent, exist_ok=True)
            self.writer = self.enter_context(
                HDF5TableWriter(
                    filename=self.output_path,
                    parent=self,
                    mode="w",
                    group_name=group_name,
                )
            )
        except HDF5ExtError as err:
            self.log.error(err.args[0], exc_info=True)
            raise err

    def setup(self, *args, **kwargs):
        self.log.info("setup of the Tool")
        if self.input_path is None:
            raise ToolConfigurationError("input_path need to be set up")
        self._load_eventsource(*args, **kwargs)
        Provenance().add_input_file(str(self.input_path), role="zdc events")

        self._setup_components(*args, **kwargs)

        self._init_writer()

        self._n_traited_events = 0

    def _setup_components(self, *args, **kwargs):
        self.log.info("setup of components")
        self.components = []
        for componentName in self.componentsList:
            if componentName in get_valid_component():
                self.components.append(Component.from_name(componentName, parent=self))
            else:
                raise ToolConfigurationError(
                    f"{componentName} is not a valid ZDCComponent"
                )

    def start(self, n_events=np.inf, *args, **kwargs):
        """
        Method to apply the components to the events of the EventSource.

        Parameters
        ----------
        n_events: int, optional
            The maximum number of events to process. Default is np.inf.
        """
        total = len(self._event_source)
        if np.isfinite(n_events):
            total = int(np.min((total, n_events)))
        for event in tqdm(
            self._event_source,
            desc=self._event_source.__class__.__name__,
            total=total,
            unit="ev",
            disable=not self.progress_bar,
        ):
            for i, component in enumerate(self.components):
                output = component(event, *args, **kwargs)
                if output is not None:
                    self._write_container(output, i)
            self._n_traited_events += 1
            if self._n_traited_events >= n_events:
                break
        self.log.info(f"{self._n_traited_events} events processed")

    def finish(self, return_output_component=False, *args, **kwargs):
        self.log.info("finishing Tool")

        output = self._finish_components(*args, **kwargs)

        self.writer.close()
        Provenance().add_output_file(str(self.output_path), role=self.table_name)
        super().finish()
        self.log.warning("Shutting down.")
        if return_output_component:
            return output

    def _finish_components(self, *args, **kwargs):
        self.log.info("finishing components")
        output = []
        for component in self.components:
            output.append(component.finish(*args, **kwargs))
        return output

    def _write_container(self, container: ZDCContainer, index_component: int = 0):
        if not isinstance(container, ZDCContainer):
            raise TypeError("component output must be an instance of ZDCContainer")
        try:
            container.validate()
            self.writer.write(
                table_name=self.table_name
                if index_component == 0
                else f"{self.table_name}_{index_component}",
                containers=container,
            )
        except FieldValidationError as e:
            log.warning(e, exc_info=True)
            self.log.warning("the container has not been written")

    @property
    def event_source(self):
        return self._event_source

    @property
    def n_traited_events(self):
        return self._n_traited_events
