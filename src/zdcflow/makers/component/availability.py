import enum
import logging
from collections import namedtuple

from ...data.aggregate import AggregateList
from ...utils import CalibrationInvariantError, FirstEventLog
from ...utils.constants import (
    ENERGY_COORDINATE,
    ENERGY_NAMES,
    MEAN_VERTEX_COORDINATE,
    MIN_ENTRIES_PER_AGGREGATE_DEFAULT,
    N_ITERATIONS,
    N_STEPS,
    RECENTERING_NAMES,
    VERTEX_NAMES,
)

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = [
    "CalibrationAvailabilityTable",
    "CalibrationEntry",
    "CalibrationSnapshot",
    "CalibrationStatus",
    "next_coordinate",
    "recentering_coordinates",
]


class CalibrationStatus(enum.Enum):
    """State of one (iteration, step) entry of the availability table.

    LOADED:          all the aggregates were found and are filled
    NOT_CONFIGURED:  no store key is configured for the entry
    ABSENT:          the store has nothing valid or an aggregate is missing
    INSUFFICIENT:    an aggregate is present with too few entries
    """

    LOADED = "loaded"
    NOT_CONFIGURED = "not configured"
    ABSENT = "absent"
    INSUFFICIENT = "insufficient"


class CalibrationEntry(namedtuple("CalibrationEntry", "status aggregates")):
    __slots__ = ()

    @property
    def loaded(self):
        return self.aggregates is not None

    @property
    def usable(self):
        return self.status is CalibrationStatus.LOADED


NOT_CONFIGURED = CalibrationEntry(CalibrationStatus.NOT_CONFIGURED, None)


def recentering_coordinates():
    """All recentering (iteration, step) slots in evaluation order, steps 0..4 are
    the joint, centrality, vx, vy and vz corrections."""
    return [
        (iteration, step)
        for iteration in range(1, N_ITERATIONS + 1)
        for step in range(N_STEPS)
    ]


def next_coordinate(coordinate):
    """Slot evaluated after ``coordinate``, (1, 0) after None."""
    if coordinate is None:
        return (1, 0)
    iteration, step = coordinate
    if step + 1 < N_STEPS:
        return (iteration, step + 1)
    return (iteration + 1, 0)


class CalibrationSnapshot:
    """Read-only view of the calibrations valid at one timestamp.

    The frontier is the deepest recentering slot reached without a gap. It is
    reported as the cascade node ``(iteration, step)`` with ``step`` in 1..5, or
    ``(0, 0)`` when no recentering slot is usable.
    """

    def __init__(self, timestamp, entries, frontier):
        self.__timestamp = timestamp
        self.__entries = dict(entries)
        self.__frontier = frontier

    @property
    def timestamp(self):
        return self.__timestamp

    @property
    def frontier(self):
        return self.__frontier

    @property
    def at_iteration(self):
        return 0 if self.__frontier is None else self.__frontier[0]

    @property
    def at_step(self):
        return 0 if self.__frontier is None else self.__frontier[1] + 1

    @property
    def frontier_node(self):
        return (self.at_iteration, self.at_step)

    def entry(self, iteration, step):
        return self.__entries.get((iteration, step), NOT_CONFIGURED)

    def is_usable(self, iteration, step):
        """Whether the slot may be evaluated, a recentering slot past a gap may be
        loaded but is not usable."""
        if not self.entry(iteration, step).usable:
            return False
        return iteration == 0 or (iteration, step) in self.recentering_path()

    def aggregates(self, iteration, step) -> AggregateList:
        entry = self.entry(iteration, step)
        if not self.is_usable(iteration, step):
            status = entry.status.value if not entry.usable else "beyond the frontier"
            raise CalibrationInvariantError(
                f"calibration for iteration {iteration} and step {step} is "
                f"{status} but was requested",
                iteration=iteration,
                step=step,
            )
        return entry.aggregates

    def recentering_path(self):
        """Slots to evaluate, in order, up to and including the frontier."""
        if self.__frontier is None:
            return []
        coordinates = recentering_coordinates()
        return coordinates[: coordinates.index(self.__frontier) + 1]

    def __repr__(self):
        return (
            f"CalibrationSnapshot(timestamp={self.__timestamp}, "
            f"frontier={self.frontier_node})"
        )


class CalibrationAvailabilityTable:
    """Track which calibration tables are usable and resolve the frontier.

    Parameters
    ----------
    store : CalibrationStore
        where the aggregate lists are fetched
    energy_key : str
        store key of the tower mean energies (iteration 0, step 0)
    mean_vertex_key : str
        store key of the mean vertex (iteration 0, step 1)
    recentering_keys : list of list of str
        store keys per iteration (1..5) and step (0..4), empty means not configured
    min_entries_per_aggregate : int
        an aggregate with fewer total entries makes its entry insufficient
    first_event_log : FirstEventLog, optional
        throttled logger for the diagnostic messages
    """

    def __init__(
        self,
        store,
        energy_key="",
        mean_vertex_key="",
        recentering_keys=None,
        min_entries_per_aggregate=MIN_ENTRIES_PER_AGGREGATE_DEFAULT,
        first_event_log=None,
    ):
        self.store = store
        self.energy_key = energy_key
        self.mean_vertex_key = mean_vertex_key
        self.recentering_keys = [] if recentering_keys is None else recentering_keys
        self.min_entries_per_aggregate = min_entries_per_aggregate
        self.first_event_log = (
            FirstEventLog(log) if first_event_log is None else first_event_log
        )
        self._snapshot = None
        self._reset()

    def _reset(self):
        self._entries = {}
        self._frontier = None

    @property
    def snapshot(self):
        return self._snapshot

    def recentering_key(self, iteration, step):
        try:
            return self.recentering_keys[iteration - 1][step]
        except IndexError:
            return ""

    def _mark(self, iteration, step, status, aggregates=None):
        self._entries[(iteration, step)] = CalibrationEntry(status, aggregates)
        return status is CalibrationStatus.LOADED

    def load(self, iteration, step, timestamp, key, names) -> bool:
        """Fetch the aggregates ``names`` stored under ``key`` and record whether
        (iteration, step) is usable. A usable recentering slot directly following
        the frontier moves the frontier onto it."""
        if not key:
            self.first_event_log.info(
                f"Calibrations not loaded for iteration {iteration} and step {step}, "
                f"no key configured"
            )
            return self._mark(iteration, step, CalibrationStatus.NOT_CONFIGURED)

        aggregates = self.store.fetch(key, timestamp)
        if aggregates is None:
            self.first_event_log.warning(
                f"Could not load calibration list from {key} at {timestamp}"
            )
            return self._mark(iteration, step, CalibrationStatus.ABSENT)

        for name in names:
            aggregate = aggregates.find(name)
            if aggregate is None:
                self.first_event_log.error(f"Object {name} not found in {key}")
                return self._mark(iteration, step, CalibrationStatus.ABSENT)
            if aggregate.entries < self.min_entries_per_aggregate:
                self.first_event_log.info(
                    f"{name} ({aggregate.__class__.__name__}) is empty! Produce "
                    f"calibration file at iteration {iteration} and step {step}"
                )
                return self._mark(
                    iteration, step, CalibrationStatus.INSUFFICIENT, aggregates
                )
            self.first_event_log.debug(
                f"Loaded {aggregate.__class__.__name__}: {name}"
            )

        self.first_event_log.info(
            f"Calibrations loaded for iteration {iteration} and step {step}"
        )
        self._mark(iteration, step, CalibrationStatus.LOADED, aggregates)
        if iteration > 0 and (iteration, step) == next_coordinate(self._frontier):
            self._frontier = (iteration, step)
        return True

    def resolve(self, timestamp) -> CalibrationSnapshot:
        """Snapshot of the calibrations valid at ``timestamp``, rebuilt only when
        the timestamp changes."""
        if self._snapshot is not None and self._snapshot.timestamp == timestamp:
            return self._snapshot

        self._reset()
        self.load(*ENERGY_COORDINATE, timestamp, self.energy_key, ENERGY_NAMES)
        if not self._entries[ENERGY_COORDINATE].usable:
            self.first_event_log.info(
                "No energy calibration found, events will not be selected"
            )
        self.load(
            *MEAN_VERTEX_COORDINATE, timestamp, self.mean_vertex_key, VERTEX_NAMES
        )
        for iteration, step in recentering_coordinates():
            self.load(
                iteration,
                step,
                timestamp,
                self.recentering_key(iteration, step),
                RECENTERING_NAMES[step],
            )

        self._snapshot = CalibrationSnapshot(timestamp, self._entries, self._frontier)
        self.first_event_log.info(
            f"Calibrations at {timestamp} resolved up to iteration "
            f"{self._snapshot.at_iteration} and step {self._snapshot.at_step}"
        )
        return self._snapshot
