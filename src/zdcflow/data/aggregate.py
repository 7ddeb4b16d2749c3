import copy
import enum
import logging
from collections import namedtuple

import numpy as np
from astropy.io import fits
from astropy.table import Table

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers

__all__ = [
    "Aggregate",
    "AggregateList",
    "BinnedAxis",
    "Covariate",
    "EventCovariates",
    "JointAggregate",
    "RunCentralityAggregate",
    "SingleCovariateAggregate",
]


class Covariate(enum.Enum):
    RUN = "run"
    CENTRALITY = "centrality"
    VX = "vx"
    VY = "vy"
    VZ = "vz"


class EventCovariates(namedtuple("EventCovariates", "run centrality vx vy vz")):
    """The per-event scalars the calibration tables are binned in."""

    __slots__ = ()

    def get(self, covariate):
        return getattr(self, Covariate(covariate).value)


class BinnedAxis:
    """One axis of an aggregate, either numeric (bin edges) or labelled (runs).

    Numeric bins are half-open ``[low, high)``, values outside the edges have no
    bin. Labelled axes grow when an unknown label is filled.
    """

    def __init__(self, covariate, edges=None, labels=None):
        self.__covariate = Covariate(covariate)
        if (edges is None) == (labels is None):
            raise ValueError("an axis needs either bin edges or bin labels")
        if edges is not None:
            edges = np.asarray(edges, dtype=float)
            if edges.ndim != 1 or len(edges) < 2 or np.any(np.diff(edges) <= 0):
                raise ValueError(
                    f"bin edges of axis {self.__covariate.value} must be a strictly "
                    f"increasing sequence of at least 2 values"
                )
            self.__labels = None
        else:
            self.__labels = [int(label) for label in np.atleast_1d(labels)]
        self.__edges = edges

    @classmethod
    def uniform(cls, covariate, nbins, low, high):
        return cls(covariate, edges=np.linspace(low, high, int(nbins) + 1))

    @classmethod
    def labelled(cls, covariate, labels=()):
        return cls(covariate, labels=list(labels))

    @property
    def covariate(self):
        return self.__covariate

    @property
    def is_labelled(self):
        return self.__labels is not None

    @property
    def edges(self):
        return None if self.__edges is None else self.__edges.copy()

    @property
    def labels(self):
        return None if self.__labels is None else list(self.__labels)

    @property
    def nbins(self):
        if self.is_labelled:
            return len(self.__labels)
        return len(self.__edges) - 1

    def find_bin(self, x):
        """Index of the bin holding ``x``, -1 when there is none."""
        if self.is_labelled:
            try:
                return self.__labels.index(int(x))
            except ValueError:
                return -1
        if not np.isfinite(x):
            return -1
        index = int(np.searchsorted(self.__edges, x, side="right")) - 1
        if index < 0 or index >= self.nbins:
            return -1
        return index

    def add_label(self, label):
        if not self.is_labelled:
            raise TypeError(f"axis {self.__covariate.value} is not labelled")
        self.__labels.append(int(label))
        return len(self.__labels) - 1

    def __eq__(self, other):
        if not isinstance(other, BinnedAxis):
            return NotImplemented
        if self.covariate != other.covariate or self.is_labelled != other.is_labelled:
            return False
        if self.is_labelled:
            return self.labels == other.labels
        return np.array_equal(self.edges, other.edges)

    def __repr__(self):
        if self.is_labelled:
            return f"BinnedAxis({self.__covariate.value}, labels={self.__labels})"
        return (
            f"BinnedAxis({self.__covariate.value}, nbins={self.nbins}, "
            f"low={self.__edges[0]}, high={self.__edges[-1]})"
        )


class Aggregate:
    """Binned profile: every bin holds the sum of the filled values and the number
    of fills, the value of a bin is the mean of what was filled in it.

    Parameters
    ----------
    name : str
        name under which the aggregate is stored
    axes : list of BinnedAxis
        the axes, in the order the points are given
    sums : np.ndarray, optional
        sum of the filled values per bin
    counts : np.ndarray, optional
        number of fills per bin
    entries : int, optional
        total number of fills, including the ones outside of the axes. Defaults to
        the sum of ``counts``.
    """

    SHAPE = None
    COVARIATES = None

    def __init__(self, name, axes, sums=None, counts=None, entries=None):
        self.__name = str(name)
        self._axes = [copy.deepcopy(axis) for axis in axes]
        self._check_axes()
        shape = tuple(axis.nbins for axis in self._axes)
        if sums is None:
            self._sums = np.zeros(shape, dtype=float)
        else:
            self._sums = np.array(sums, dtype=float).reshape(shape)
        if counts is None:
            self._counts = np.zeros(shape, dtype=np.int64)
        else:
            self._counts = np.array(counts, dtype=np.int64).reshape(shape)
        self._entries = (
            int(self._counts.sum()) if entries is None else int(entries)
        )

    def _check_axes(self):
        covariates = tuple(axis.covariate for axis in self._axes)
        if self.COVARIATES is not None and covariates != self.COVARIATES:
            raise ValueError(
                f"{self.__class__.__name__} {self.__name} needs the axes "
                f"{[cov.value for cov in self.COVARIATES]}, got "
                f"{[cov.value for cov in covariates]}"
            )

    @property
    def name(self):
        return self.__name

    @property
    def axes(self):
        return copy.deepcopy(self._axes)

    @property
    def covariates(self):
        return tuple(axis.covariate for axis in self._axes)

    @property
    def entries(self):
        return self._entries

    @property
    def sums(self):
        return self._sums.copy()

    @property
    def counts(self):
        return self._counts.copy()

    def _as_point(self, point):
        if np.ndim(point) == 0:
            point = (point,)
        point = tuple(point)
        if len(point) != len(self._axes):
            raise ValueError(
                f"{self.__name} is binned in {len(self._axes)} covariates, "
                f"got a point with {len(point)}"
            )
        return point

    def _locate(self, point):
        index = tuple(
            axis.find_bin(x) for axis, x in zip(self._axes, self._as_point(point))
        )
        if any(i < 0 for i in index):
            return None
        return index

    def _extend(self, dim, label):
        index = self._axes[dim].add_label(label)
        shape = list(self._sums.shape)
        shape[dim] = 1
        self._sums = np.concatenate(
            [self._sums, np.zeros(shape, dtype=float)], axis=dim
        )
        self._counts = np.concatenate(
            [self._counts, np.zeros(shape, dtype=np.int64)], axis=dim
        )
        return index

    def fill(self, point, value):
        """Add ``value`` at ``point``, unknown labels extend their axis."""
        point = self._as_point(point)
        self._entries += 1
        index = []
        for dim, (axis, x) in enumerate(zip(self._axes, point)):
            i = axis.find_bin(x)
            if i < 0 and axis.is_labelled:
                i = self._extend(dim, x)
            if i < 0:
                return
            index.append(i)
        index = tuple(index)
        self._sums[index] += value
        self._counts[index] += 1

    def value_at(self, point):
        """Mean of the bin holding ``point``, 0 for an empty or missing bin."""
        index = self._locate(point)
        if index is None or self._counts[index] == 0:
            return 0.0
        return float(self._sums[index] / self._counts[index])

    def entry_count_at(self, point):
        index = self._locate(point)
        if index is None:
            return 0
        return int(self._counts[index])

    def point_for(self, covariates: EventCovariates):
        return tuple(covariates.get(cov) for cov in self.covariates)

    def value_for(self, covariates: EventCovariates):
        return self.value_at(self.point_for(covariates))

    def entry_count_for(self, covariates: EventCovariates):
        return self.entry_count_at(self.point_for(covariates))

    def to_hdu(self):
        """FITS binary table with a single row holding the bins and the axes."""
        columns = {"sums": [self._sums], "counts": [self._counts]}
        for axis in self._axes:
            if axis.nbins == 0:
                raise ValueError(
                    f"{self.__name} can not be written, axis "
                    f"{axis.covariate.value} has no bin"
                )
            if axis.is_labelled:
                columns[f"labels_{axis.covariate.value}"] = [
                    np.array(axis.labels, dtype=np.int64)
                ]
            else:
                columns[f"edges_{axis.covariate.value}"] = [axis.edges]
        hdu = fits.table_to_hdu(Table(columns))
        hdu.name = self.__name
        hdu.header["AGGNAME"] = self.__name
        hdu.header["AGGTYPE"] = self.SHAPE
        hdu.header["COVARS"] = ",".join(cov.value for cov in self.covariates)
        hdu.header["ENTRIES"] = self._entries
        return hdu

    @staticmethod
    def from_hdu(hdu):
        shape = hdu.header["AGGTYPE"]
        if shape not in AGGREGATE_SHAPES:
            raise ValueError(f"unknown aggregate type {shape}")
        data = hdu.data
        axes = []
        for covariate in hdu.header["COVARS"].split(","):
            if f"labels_{covariate}" in data.columns.names:
                axes.append(
                    BinnedAxis(
                        covariate,
                        labels=np.atleast_1d(data[f"labels_{covariate}"][0]),
                    )
                )
            else:
                axes.append(
                    BinnedAxis(
                        covariate, edges=np.atleast_1d(data[f"edges_{covariate}"][0])
                    )
                )
        return AGGREGATE_SHAPES[shape](
            name=hdu.header["AGGNAME"],
            axes=axes,
            sums=data["sums"][0],
            counts=data["counts"][0],
            entries=hdu.header["ENTRIES"],
        )

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(name={self.__name!r}, axes={self._axes}, "
            f"entries={self._entries})"
        )


class SingleCovariateAggregate(Aggregate):
    """Profile in one covariate: run, centrality, vx, vy or vz."""

    SHAPE = "single"

    def _check_axes(self):
        if len(self._axes) != 1:
            raise ValueError(
                f"SingleCovariateAggregate {self.name} needs exactly one axis, "
                f"got {len(self._axes)}"
            )

    @classmethod
    def uniform(cls, name, covariate, nbins, low, high):
        return cls(name, [BinnedAxis.uniform(covariate, nbins, low, high)])

    @classmethod
    def per_run(cls, name, runs=()):
        return cls(name, [BinnedAxis.labelled(Covariate.RUN, runs)])


class RunCentralityAggregate(Aggregate):
    """Profile in run and centrality, used for the tower mean energies."""

    SHAPE = "run_centrality"
    COVARIATES = (Covariate.RUN, Covariate.CENTRALITY)

    @classmethod
    def create(cls, name, runs=(), nbins=90, low=0.0, high=90.0):
        return cls(
            name,
            [
                BinnedAxis.labelled(Covariate.RUN, runs),
                BinnedAxis.uniform(Covariate.CENTRALITY, nbins, low, high),
            ],
        )


class JointAggregate(Aggregate):
    """Profile in centrality, vx, vy and vz, used for the first recentering step."""

    SHAPE = "joint"
    COVARIATES = (Covariate.CENTRALITY, Covariate.VX, Covariate.VY, Covariate.VZ)

    @classmethod
    def create(
        cls,
        name,
        centrality=(9, 0.0, 90.0),
        vx=(3, -0.01, 0.01),
        vy=(3, -0.01, 0.01),
        vz=(3, -10.0, 10.0),
    ):
        return cls(
            name,
            [
                BinnedAxis.uniform(covariate, *binning)
                for covariate, binning in zip(cls.COVARIATES, [centrality, vx, vy, vz])
            ],
        )


AGGREGATE_SHAPES = {
    _class.SHAPE: _class
    for _class in [SingleCovariateAggregate, RunCentralityAggregate, JointAggregate]
}


class AggregateList:
    """Named collection of aggregates, the unit stored in the calibration store."""

    def __init__(self, aggregates=()):
        self.__aggregates = {}
        for aggregate in aggregates:
            self.add(aggregate)

    def add(self, aggregate: Aggregate):
        if not isinstance(aggregate, Aggregate):
            raise TypeError(f"{aggregate} is not an Aggregate")
        self.__aggregates[aggregate.name] = aggregate

    def find(self, name):
        return self.__aggregates.get(name)

    @property
    def names(self):
        return list(self.__aggregates.keys())

    def __contains__(self, name):
        return name in self.__aggregates

    def __iter__(self):
        return iter(self.__aggregates.values())

    def __len__(self):
        return len(self.__aggregates)

    def write(self, path, overwrite=False):
        hdul = fits.HDUList(
            [fits.PrimaryHDU()] + [aggregate.to_hdu() for aggregate in self]
        )
        hdul.writeto(path, overwrite=overwrite)

    @classmethod
    def read(cls, path):
        with fits.open(path, memmap=False) as hdul:
            return cls([Aggregate.from_hdu(hdu) for hdu in hdul[1:]])
