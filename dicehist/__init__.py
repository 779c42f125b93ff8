import typing

from .roll import (
    Comparison,
    Decision,
    DecisionSet,
    DegenerateDieError,
    DiceRollError,
    DiceSet,
    Die,
    HistogramBoundsError,
    InvalidOperatorToken,
    Rollable,
)
from .roll_parser import parse
from .sanitizer import sanitize
from .simulation import Reduction, simulate, simulate_parallel


def build_decision(
    operator: typing.Union[Comparison, str],
    decision_dice: DiceSet,
    decision_value: int,
    dice: DiceSet,
) -> Decision:
    return Decision(operator, decision_dice, decision_value, dice)


def describe(expr: Rollable) -> str:
    return expr.describe()


__all__ = [
    "Comparison",
    "Decision",
    "DecisionSet",
    "DegenerateDieError",
    "DiceRollError",
    "DiceSet",
    "Die",
    "HistogramBoundsError",
    "InvalidOperatorToken",
    "Reduction",
    "Rollable",
    "build_decision",
    "describe",
    "parse",
    "sanitize",
    "simulate",
    "simulate_parallel",
]
