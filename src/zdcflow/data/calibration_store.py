import logging
import os
import pathlib
from abc import abstractmethod

import numpy as np
from ctapipe.core import Component
from ctapipe.core.traits import Bool, Path

from ..utils import CalibrationStoreError
from .aggregate import AggregateList

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = [
    "CalibrationStore",
    "InMemoryCalibrationStore",
    "LocalCalibrationStore",
    "VALIDITY_END",
]

# far future, in ms since epoch
VALIDITY_END = 9999999999999


class CalibrationStore(Component):
    """Resolve the aggregate list stored under a key for a validity timestamp.

    When several stored objects are valid at a timestamp, the one with the latest
    ``valid_from`` wins. Every answer, found or absent, is cached with the interval
    over which it stays the same. A later fetch of the same key with a timestamp
    inside that interval does not touch the underlying storage.
    """

    caching = Bool(
        default_value=True,
        help="cache retrieved objects by validity interval",
    ).tag(config=True)

    def __init__(self, config=None, parent=None, **kwargs):
        super().__init__(config=config, parent=parent, **kwargs)
        self._cache = {}
        self._n_retrievals = 0

    @property
    def n_retrievals(self):
        return self._n_retrievals

    def _from_cache(self, key, timestamp):
        """Return (True, aggregates or None) on a cached answer, (False, None)
        otherwise."""
        for valid_from, valid_until, aggregates in self._cache.get(key, []):
            if valid_from <= timestamp < valid_until:
                return True, aggregates
        return False, None

    def fetch(self, key: str, timestamp: int):
        """Return the `AggregateList` valid at ``timestamp`` for ``key``, None if
        the key is empty or nothing valid is stored."""
        if not key:
            return None
        if self.caching:
            cached, aggregates = self._from_cache(key, timestamp)
            if cached:
                return aggregates
        self._n_retrievals += 1
        valid_from, valid_until, selected = self._select(
            self._list_candidates(key), timestamp
        )
        aggregates = None
        if selected is not None:
            try:
                aggregates = self._load(selected)
            except CalibrationStoreError as e:
                self.log.warning(e.message)
        if self.caching:
            self._cache.setdefault(key, []).append(
                (valid_from, valid_until, aggregates)
            )
        return aggregates

    def _invalidate(self, key):
        self._cache.pop(key, None)

    @abstractmethod
    def _list_candidates(self, key: str):
        """Return the stored objects of ``key`` as (valid_from, valid_until, handle)."""

    @abstractmethod
    def _load(self, handle):
        """Return the `AggregateList` behind a candidate handle."""

    @abstractmethod
    def put(
        self,
        key: str,
        aggregates: AggregateList,
        valid_from: int = 0,
        valid_until: int = VALIDITY_END,
    ):
        pass

    @staticmethod
    def _select(candidates, timestamp):
        """Among (valid_from, valid_until, handle) pick the latest valid_from valid
        at ``timestamp``.

        Returns
        -------
        (lower, upper, handle)
            ``handle`` is None when nothing is valid. ``[lower, upper)`` is the
            interval around ``timestamp`` over which the same answer holds.
        """
        valid = [
            candidate
            for candidate in candidates
            if candidate[0] <= timestamp < candidate[1]
        ]
        if len(valid) == 0:
            lower = max(
                (until for _, until, _ in candidates if until <= timestamp),
                default=-np.inf,
            )
            upper = min(
                (start for start, _, _ in candidates if start > timestamp),
                default=np.inf,
            )
            return lower, upper, None

        selected = max(valid, key=lambda candidate: candidate[0])
        later = [candidate for candidate in candidates if candidate[0] > selected[0]]
        lower = max(
            [selected[0]] + [until for _, until, _ in later if until <= timestamp]
        )
        upper = min(
            [selected[1]] + [start for start, _, _ in later if start > timestamp]
        )
        return lower, upper, selected[2]


class InMemoryCalibrationStore(CalibrationStore):
    """Calibration store holding its objects in memory."""

    def __init__(self, config=None, parent=None, **kwargs):
        super().__init__(config=config, parent=parent, **kwargs)
        self._objects = {}

    def put(self, key, aggregates, valid_from=0, valid_until=VALIDITY_END):
        if valid_until <= valid_from:
            raise ValueError(
                f"empty validity range [{valid_from}, {valid_until}) for {key}"
            )
        self._objects.setdefault(key, []).append(
            (int(valid_from), int(valid_until), aggregates)
        )
        self._invalidate(key)

    def _list_candidates(self, key):
        return list(self._objects.get(key, []))

    def _load(self, handle):
        return handle


class LocalCalibrationStore(CalibrationStore):
    """Calibration store reading FITS files from a directory tree.

    An object stored under ``key`` and valid in ``[valid_from, valid_until)`` lives
    in ``<root_path>/<key>/<valid_from>_<valid_until>.fits``.
    """

    root_path = Path(
        default_value=pathlib.Path(
            os.environ.get("ZDCFLOW_CALIB", "/tmp/zdcflow/calib")
        ),
        directory_ok=True,
        file_ok=False,
        help="root directory of the calibration objects",
    ).tag(config=True)

    SUFFIX = ".fits"

    def _list_candidates(self, key):
        directory = pathlib.Path(self.root_path) / key
        if not directory.is_dir():
            self.log.debug(f"no calibration directory {directory}")
            return []
        candidates = []
        for path in directory.glob(f"*{self.SUFFIX}"):
            try:
                valid_from, valid_until = (
                    int(bound) for bound in path.name[: -len(self.SUFFIX)].split("_")
                )
            except ValueError:
                self.log.debug(f"{path} does not follow <from>_<until>, skipped")
                continue
            candidates.append((valid_from, valid_until, path))
        return candidates

    def _load(self, path):
        self.log.debug(f"loading {path}")
        try:
            return AggregateList.read(path)
        except (OSError, KeyError, ValueError) as e:
            raise CalibrationStoreError(f"could not read {path}: {e}") from e

    def put(self, key, aggregates, valid_from=0, valid_until=VALIDITY_END):
        if valid_until <= valid_from:
            raise ValueError(
                f"empty validity range [{valid_from}, {valid_until}) for {key}"
            )
        directory = pathlib.Path(self.root_path) / key
        os.makedirs(directory, exist_ok=True)
        path = directory / f"{int(valid_from)}_{int(valid_until)}{self.SUFFIX}"
        aggregates.write(path, overwrite=True)
        self._invalidate(key)
        self.log.info(f"{key} stored in {path}")
        return path
