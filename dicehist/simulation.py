import concurrent.futures
import enum
import logging
import os
import random
import typing

import pandas

from .roll import DiceRollError, HistogramBoundsError, Rollable

logger = logging.getLogger(__name__)

PMF = typing.List[float]


class Reduction(enum.Enum):
    """How the per-worker distributions of a parallel run are merged."""

    SUM = "sum"
    RENORMALIZE = "renormalize"

    def reduce(self, partials: typing.Sequence[PMF]) -> PMF:
        if not partials:
            return []
        merged = [sum(column) for column in zip(*partials)]
        if self is Reduction.SUM:
            return merged
        total = sum(merged)
        return [x / total for x in merged]


def simulate(
    expr: Rollable, iterations: int, rng: typing.Optional[random.Random] = None
) -> PMF:
    if iterations < 1:
        raise DiceRollError("iterations must be positive, got %s" % iterations)
    if rng is None:
        rng = random.Random()

    # an expression with nothing to roll still gets a slot for 0
    bound = max(expr.max(), 1)
    hist = [0] * bound
    logger.debug("rolling %s with max %s", expr, bound)
    for _ in range(iterations):
        outcome = expr.roll(rng)
        if not 0 <= outcome < bound:
            raise HistogramBoundsError(
                "%s rolled %s outside of [0, %s)" % (expr, outcome, bound)
            )
        hist[outcome] += 1

    total = sum(hist)
    return [count / total for count in hist]


def worker_count(requested: typing.Optional[int] = None) -> int:
    available = os.cpu_count() or 1
    if requested is None:
        return available
    if requested < 1:
        raise DiceRollError("worker count must be positive, got %s" % requested)
    return min(requested, available)


def simulate_parallel(
    expr: Rollable,
    iterations: int,
    workers: typing.Optional[int] = None,
    reduction: Reduction = Reduction.RENORMALIZE,
    seed: typing.Optional[int] = None,
    executor_factory: typing.Callable[
        ..., concurrent.futures.Executor
    ] = concurrent.futures.ThreadPoolExecutor,
) -> PMF:
    """Split ``iterations`` evenly over a pool and merge the partial PMFs.

    Each worker simulates ``iterations // W`` trials with its own generator;
    the remainder is not simulated. An empty list is returned when the pool
    cannot be started.
    """
    if iterations < 1:
        raise DiceRollError("iterations must be positive, got %s" % iterations)
    n_workers = min(worker_count(workers), iterations)
    share = iterations // n_workers
    dropped = iterations % n_workers
    if dropped:
        logger.debug(
            "dropping %s of %s iterations to split over %s workers",
            dropped,
            iterations,
            n_workers,
        )

    seeder = random.Random(seed)
    rngs = [random.Random(seeder.getrandbits(64)) for _ in range(n_workers)]

    # pools start their workers lazily, on submit
    try:
        with executor_factory(max_workers=n_workers) as executor:
            futures = [executor.submit(simulate, expr, share, rng) for rng in rngs]
    except (OSError, RuntimeError, ValueError) as e:
        logger.warning("could not start %s simulation workers: %s", n_workers, e)
        return []

    partials = [future.result() for future in futures]
    return reduction.reduce(partials)


def pmf_mean(pmf: typing.Sequence[float]) -> float:
    total = sum(pmf)
    if not total:
        return 0.0
    return sum(value * p for value, p in enumerate(pmf)) / total


def pmf_frame(pmf: typing.Sequence[float]) -> pandas.DataFrame:
    return pandas.DataFrame.from_records(
        list(enumerate(pmf)), columns=["value", "probability"]
    )
