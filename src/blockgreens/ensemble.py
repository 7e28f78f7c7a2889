# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import logging
import operator
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

from blockgreens import ENSEMBLE_NUM_WORKERS, ArrayLike, NDArray, sparse, xp
from blockgreens.datastructures import BlockMatrix, BlockMatrixBase, BlockPartition
from blockgreens.exceptions import BlockGreensError, DimensionMismatch
from blockgreens.profiling import Profiler

profiler = Profiler()

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class UnitResult:
    """Outcome of one unit of a batched computation.

    Attributes
    ----------
    index : int
        Position of the unit in the ensemble.
    value : Any
        The computed value, None if the unit failed.
    error : BlockGreensError | None
        The error that aborted the unit, if any.
    converged : bool
        Whether all iterative steps of the unit converged.

    """

    index: int
    value: Any = None
    error: BlockGreensError | None = None
    converged: bool = True

    @property
    def ok(self) -> bool:
        """Whether the unit produced a value."""
        return self.error is None


class MatrixEnsemble(Sequence):
    """A finite, restartable sequence of matrices.

    The ensemble accepts all the shapes in which a collection of
    matrices is usually at hand and presents them as one indexable
    sequence of `BlockMatrix` objects.

    Parameters
    ----------
    source : ArrayLike | Sequence | Callable[[int], ArrayLike]
        Either a single matrix, a stack of matrices with shape
        `(num_matrices, n, n)`, a sequence of matrices, or a function
        that returns the matrix for a given index.
    count : int, optional
        The number of matrices. Required if `source` is a function,
        ignored otherwise.
    block_sizes : ArrayLike | BlockPartition, optional
        Common block sizes of all matrices. By default every matrix is a
        single block, block matrices keep their partitions.

    Raises
    ------
    ValueError
        If `source` is a function and `count` is not a non-negative
        integer.
    DimensionMismatch
        If an array source is not two- or three-dimensional.
    InvalidPartition
        If the block sizes are invalid, or exceed the size of a stored
        matrix.

    """

    def __init__(
        self,
        source: ArrayLike | Sequence | Callable[[int], ArrayLike],
        count: int | None = None,
        block_sizes: ArrayLike | BlockPartition | None = None,
    ) -> None:
        """Initializes the ensemble and validates the stored matrices."""
        self.block_sizes = None if block_sizes is None else BlockPartition(block_sizes)

        self._function = None
        if callable(source):
            if count is None or operator.index(count) < 0:
                raise ValueError(
                    "A non-negative count is required for function ensembles."
                )
            self._function = source
            self._items = None
            self._count = operator.index(count)
            return

        if isinstance(source, BlockMatrixBase) or sparse.issparse(source):
            items = [source]
        elif isinstance(source, xp.ndarray):
            if source.ndim == 2:
                items = [source]
            elif source.ndim == 3:
                items = list(source)
            else:
                raise DimensionMismatch(
                    f"Expected a matrix or a stack of matrices, got shape "
                    f"{source.shape}."
                )
        else:
            items = list(source)

        # Fail fast on inconsistent partitions.
        if self.block_sizes is not None:
            for item in items:
                shape = item.shape if hasattr(item, "shape") else xp.shape(item)
                BlockPartition(self.block_sizes, dimension=min(shape[-2], shape[-1]))

        self._items = items
        self._count = len(items)

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index: int) -> BlockMatrixBase:
        """Returns the matrix at the given index as a block matrix."""
        index = operator.index(index)
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError(f"Ensemble index out of range for {self._count} units.")

        item = self._function(index) if self._items is None else self._items[index]

        if isinstance(item, BlockMatrixBase):
            if self.block_sizes is None:
                return item
            return BlockMatrix(item.to_dense(), self.block_sizes, copy=False)

        return BlockMatrix(item, self.block_sizes, copy=False)

    def __repr__(self) -> str:
        kind = "function" if self._items is None else "stored"
        return f"MatrixEnsemble({kind}, count={self._count})"


class ProgressCounter:
    """Counts completed units across worker threads.

    Each thread accumulates into its own cell. The cells are only
    merged when the count is read, so incrementing never contends for
    a shared lock.

    Parameters
    ----------
    total : int
        The total number of units.

    """

    def __init__(self, total: int) -> None:
        """Initializes the counter."""
        self.total = total
        self._local = threading.local()
        self._cells: list[list[int]] = []
        self._register_lock = threading.Lock()

    def increment(self, amount: int = 1) -> None:
        """Adds to the count of the calling thread."""
        cell = getattr(self._local, "cell", None)
        if cell is None:
            cell = [0]
            with self._register_lock:
                self._cells.append(cell)
            self._local.cell = cell
        cell[0] += amount

    @property
    def count(self) -> int:
        """The number of completed units over all threads."""
        with self._register_lock:
            cells = list(self._cells)
        return sum(cell[0] for cell in cells)

    @property
    def fraction(self) -> float:
        """The fraction of completed units in `[0, 1]`."""
        if self.total == 0:
            return 1.0
        return min(self.count / self.total, 1.0)


@profiler.profile(level="api")
def solve_ensemble(
    ensemble: Sequence,
    func: Callable[[Any], tuple[Any, bool]],
    num_workers: int | None = None,
    progress_callback: ProgressCallback | None = None,
    order: Sequence[int] | None = None,
) -> list[UnitResult]:
    """Applies a function to every unit of an ensemble.

    Units are independent, so they are dispatched to a thread pool.
    Every result is written to the slot of its unit, the returned list
    is thus ordered by unit index irrespective of the execution order.

    Parameters
    ----------
    ensemble : Sequence
        The units, e.g. a `MatrixEnsemble` or a sequence of energies.
    func : Callable[[Any], tuple[Any, bool]]
        Computes a unit. Returns the value and whether all iterative
        steps converged.
    num_workers : int, optional
        The number of worker threads. One worker runs all units in the
        calling thread. By default the `ENSEMBLE_NUM_WORKERS` setting.
    progress_callback : Callable[[float], None], optional
        Called with the completed fraction after every unit, possibly
        from worker threads, and once with 1.0 when all units are done.
    order : Sequence[int], optional
        The order in which units are submitted, a permutation of the
        unit indices. By default ascending.

    Returns
    -------
    list[UnitResult]
        One result per unit. Units that hit a singular block, or whose
        matrix does not fit the block sizes, carry the error instead of
        a value. Any other exception cancels the pending units and is
        raised.

    Raises
    ------
    ValueError
        If `num_workers` is smaller than one or `order` is not a
        permutation of the unit indices.

    """
    num_units = len(ensemble)
    if num_workers is None:
        num_workers = ENSEMBLE_NUM_WORKERS
    if num_workers < 1:
        raise ValueError(f"At least one worker is required, got {num_workers}.")

    if order is None:
        order = range(num_units)
    elif sorted(order) != list(range(num_units)):
        raise ValueError("The submission order must be a permutation of the units.")

    results: list[UnitResult | None] = [None] * num_units
    progress = ProgressCounter(num_units)

    def _run(index: int) -> None:
        try:
            value, converged = func(ensemble[index])
            result = UnitResult(index, value, None, bool(converged))
        except BlockGreensError as e:
            logger.warning("Unit %d failed: %s", index, e)
            result = UnitResult(index, None, e, False)

        results[index] = result
        progress.increment()
        if progress_callback is not None:
            progress_callback(progress.fraction)

    logger.debug("Solving %d units with %d worker(s).", num_units, num_workers)

    if num_workers == 1 or num_units <= 1:
        for index in order:
            _run(index)
    else:
        with ThreadPoolExecutor(max_workers=min(num_workers, num_units)) as executor:
            futures = [executor.submit(_run, index) for index in order]
            try:
                for future in as_completed(futures):
                    future.result()
            except Exception:
                for future in futures:
                    future.cancel()
                raise

    if progress_callback is not None:
        progress_callback(1.0)

    return results


def values(results: Sequence[UnitResult], fill_value: Any = None) -> list:
    """Extracts the unit values, substituting `fill_value` for failures."""
    return [result.value if result.ok else fill_value for result in results]


def stack_values(results: Sequence[UnitResult]) -> NDArray:
    """Stacks the values of successful units into one array.

    Raises
    ------
    BlockGreensError
        The error of the first failed unit, if any unit failed.

    """
    for result in results:
        if not result.ok:
            raise result.error
    return xp.stack([xp.asarray(result.value) for result in results])
