import copy
import logging
from pathlib import Path

from ctapipe.containers import Container
from ctapipe.io import HDF5TableReader

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers


__all__ = [
    "ZDCContainer",
]


class ZDCContainer(Container):
    """Base class for the flat ZDC containers, written one row per event with a
    HDF5TableWriter.
    """

    @staticmethod
    def _container_from_hdf5(path, container_class, group_name="data", table_name=None):
        """
        Static method to read the rows of a container table from an HDF5 file.

        Parameters:
        path (str or Path): The path to the HDF5 file.
        container_class (Container): The class of the container to be filled with data.
        group_name (str): The group holding the table.
        table_name (str, optional): The table name, defaults to the class name.

        Yields:
        Container: One container per row of the table.
        """
        if isinstance(path, str):
            path = Path(path)
        if table_name is None:
            table_name = container_class.__name__

        with HDF5TableReader(path) as reader:
            for container in reader.read(
                table_name=f"/{group_name}/{table_name}",
                containers=container_class,
            ):
                yield copy.deepcopy(container)

    @classmethod
    def from_hdf5(cls, path, group_name="data", table_name=None):
        """
        Reads the containers of a table from an HDF5 file.

        Yields:
        Container: The container generator linked to the HDF5 file.

        Example:
        >>> records = list(QVectorContainer.from_hdf5('qvectors.h5',
        table_name="qvectors"))
        """
        return cls._container_from_hdf5(
            path, container_class=cls, group_name=group_name, table_name=table_name
        )
