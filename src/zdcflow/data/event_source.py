import logging
import pathlib

import tables
from ctapipe.io import HDF5TableWriter

from .container import ZDCEventContainer

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = ["ZDCEventSource", "write_events"]

EVENTS_GROUP = "events"
EVENTS_TABLE = "zdc"


def write_events(path, events, mode="w"):
    """Write ``ZDCEventContainer`` rows to ``path`` in the layout read by
    `ZDCEventSource`."""
    n_events = 0
    with HDF5TableWriter(filename=path, group_name=EVENTS_GROUP, mode=mode) as writer:
        for event in events:
            writer.write(table_name=EVENTS_TABLE, containers=event)
            n_events += 1
    log.debug(f"{n_events} events written to {path}")
    return n_events


class ZDCEventSource:
    """Iterate over the ``ZDCEventContainer`` stored in an HDF5 file.

    Parameters
    ----------
    input_url : str or pathlib.Path
        file written by `write_events`
    max_events : int, optional
        stop after this number of events
    """

    def __init__(self, input_url, max_events=None):
        self.input_url = pathlib.Path(input_url)
        if not self.input_url.exists():
            raise FileNotFoundError(f"{self.input_url} does not exist")
        self.max_events = max_events
        self._n_events = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        pass

    def __len__(self):
        if self._n_events is None:
            with tables.open_file(self.input_url) as h5file:
                self._n_events = h5file.get_node(
                    f"/{EVENTS_GROUP}/{EVENTS_TABLE}"
                ).nrows
        if self.max_events is None:
            return self._n_events
        return min(self._n_events, self.max_events)

    def __iter__(self):
        for i, event in enumerate(
            ZDCEventContainer.from_hdf5(
                self.input_url, group_name=EVENTS_GROUP, table_name=EVENTS_TABLE
            )
        ):
            if self.max_events is not None and i >= self.max_events:
                break
            yield event
