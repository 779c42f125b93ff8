import itertools
import logging
import random
import threading

import pytest

import dicehist.simulation as simulation
from dicehist.roll import (
    Comparison,
    Decision,
    DiceRollError,
    DiceSet,
    HistogramBoundsError,
    Rollable,
)
from dicehist.simulation import (
    Reduction,
    pmf_frame,
    pmf_mean,
    simulate,
    simulate_parallel,
    worker_count,
)


class _HighRandom(random.Random):
    def randint(self, a, b):
        return b


class _Fixed(Rollable):
    def __init__(self, value, bound):
        self.value = value
        self.bound = bound

    def roll(self, rng, verbose=False):
        return self.value

    def max(self):
        return self.bound

    def describe(self):
        return "fixed %s" % self.value


class _Counter(Rollable):
    def __init__(self):
        self.calls = itertools.count()

    def roll(self, rng, verbose=False):
        next(self.calls)
        return 0

    def max(self):
        return 1

    def describe(self):
        return "counter"


@pytest.fixture
def four_cpus(monkeypatch):
    monkeypatch.setattr(simulation.os, "cpu_count", lambda: 4)


def test_simulate_is_normalized():
    pmf = simulate(DiceSet.of(2, 6), 5000, random.Random(1))
    assert len(pmf) == 12
    assert sum(pmf) == pytest.approx(1.0)
    assert pmf[0] == pmf[1] == 0.0


def test_simulate_empty_expression_gets_one_slot():
    assert simulate(DiceSet.empty(), 10, random.Random(1)) == [1.0]


def test_simulate_largest_roll_lands_in_last_slot():
    pmf = simulate(DiceSet.of(1, 20), 10, _HighRandom())
    assert len(pmf) == 20
    assert pmf[-1] == 1.0


def test_simulate_mean():
    pmf = simulate(DiceSet.of(3, 6), 50000, random.Random(3))
    # each d6 rolls 1..5
    assert pmf_mean(pmf) == pytest.approx(9.0, abs=0.1)


def test_simulate_decision():
    decision = Decision(
        Comparison.GREATER_THAN, DiceSet.of(1, 20), 12, DiceSet.of(1, 20)
    )
    pmf = simulate(decision, 20000, random.Random(5))
    assert len(pmf) == 20
    assert pmf[0] == pytest.approx(12 / 19, abs=0.02)
    assert sum(pmf) == pytest.approx(1.0)


def test_simulate_is_reproducible():
    dice = DiceSet.of(2, 8, 1)
    assert simulate(dice, 1000, random.Random(9)) == simulate(
        dice, 1000, random.Random(9)
    )


@pytest.mark.parametrize("value", [3, 7, -1])
def test_simulate_out_of_bounds_is_fatal(value):
    with pytest.raises(HistogramBoundsError):
        simulate(_Fixed(value, 3), 5, random.Random(0))


@pytest.mark.parametrize("iterations", [0, -5])
def test_simulate_requires_iterations(iterations):
    with pytest.raises(DiceRollError):
        simulate(DiceSet.of(1, 6), iterations)


def test_reduction_policies():
    partials = [[0.5, 0.5], [1.0, 0.0]]
    assert Reduction.SUM.reduce(partials) == [1.5, 0.5]
    assert Reduction.RENORMALIZE.reduce(partials) == [0.75, 0.25]
    assert Reduction.SUM.reduce([]) == []


def test_worker_count(four_cpus):
    assert worker_count() == 4
    assert worker_count(2) == 2
    assert worker_count(16) == 4
    with pytest.raises(DiceRollError):
        worker_count(0)


def test_parallel_renormalized(four_cpus):
    pmf = simulate_parallel(DiceSet.of(2, 6), 8000, seed=1)
    assert len(pmf) == 12
    assert sum(pmf) == pytest.approx(1.0)


def test_parallel_sum_adds_up_to_worker_count(four_cpus):
    pmf = simulate_parallel(DiceSet.of(2, 6), 8000, reduction=Reduction.SUM, seed=1)
    assert sum(pmf) == pytest.approx(4.0)


def test_parallel_matches_sequential_shape(four_cpus):
    dice = DiceSet.of(3, 6)
    pmf = simulate_parallel(dice, 40000, seed=2)
    assert pmf_mean(pmf) == pytest.approx(9.0, abs=0.1)


def test_parallel_is_reproducible_with_seed(four_cpus):
    dice = DiceSet.of(1, 20, 2)
    assert simulate_parallel(dice, 4000, seed=11) == simulate_parallel(
        dice, 4000, seed=11
    )


def test_parallel_drops_remainder(four_cpus):
    counter = _Counter()
    simulate_parallel(counter, 10, workers=3)
    assert next(counter.calls) == 9


def test_parallel_with_fewer_iterations_than_workers(four_cpus):
    pmf = simulate_parallel(DiceSet.of(1, 6), 2, workers=4, seed=0)
    assert sum(pmf) == pytest.approx(1.0)


def test_parallel_pool_failure_returns_empty(caplog):
    def broken_pool(max_workers):
        raise RuntimeError("can't start new thread")

    with caplog.at_level(logging.WARNING, logger="dicehist.simulation"):
        pmf = simulate_parallel(DiceSet.of(1, 6), 100, executor_factory=broken_pool)
    assert pmf == []
    assert "could not start" in caplog.text


def test_parallel_thread_start_failure_returns_empty(monkeypatch, caplog):
    def refuse_start(self):
        raise RuntimeError("can't start new thread")

    monkeypatch.setattr(threading.Thread, "start", refuse_start)
    with caplog.at_level(logging.WARNING, logger="dicehist.simulation"):
        pmf = simulate_parallel(DiceSet.of(1, 6), 100, workers=2)
    assert pmf == []
    assert "can't start new thread" in caplog.text


def test_parallel_worker_errors_propagate(four_cpus):
    with pytest.raises(HistogramBoundsError):
        simulate_parallel(_Fixed(5, 3), 8, workers=2)


def test_parallel_requires_iterations():
    with pytest.raises(DiceRollError):
        simulate_parallel(DiceSet.of(1, 6), 0)


def test_pmf_frame():
    data = pmf_frame([0.0, 0.25, 0.75])
    assert list(data.columns) == ["value", "probability"]
    assert data["value"].tolist() == [0, 1, 2]
    assert data["probability"].tolist() == [0.0, 0.25, 0.75]


def test_pmf_mean():
    assert pmf_mean([0.0, 0.5, 0.5]) == 1.5
    assert pmf_mean([]) == 0.0
