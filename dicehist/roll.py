import enum
import itertools
import logging
import random
import typing

logger = logging.getLogger(__name__)


class DiceRollError(ValueError):
    pass


class InvalidOperatorToken(DiceRollError):
    pass


class DegenerateDieError(DiceRollError):
    pass


class HistogramBoundsError(RuntimeError):
    """Raised when a rolled outcome falls outside the histogram sized by max()."""


class Comparison(enum.Enum):
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    LESS_THAN = "<"
    GREATER_THAN = ">"
    EQUAL = "=="

    @classmethod
    def parse(cls, token: str) -> "Comparison":
        token = token.strip()
        if token == "=":
            return cls.EQUAL
        try:
            return cls(token)
        except ValueError:
            raise InvalidOperatorToken("unknown comparison operator %r" % token) from None

    @property
    def token(self) -> str:
        return self.value

    def evaluate(self, lhs: int, rhs: int) -> bool:
        if self is Comparison.LESS_EQUAL:
            return lhs <= rhs
        elif self is Comparison.GREATER_EQUAL:
            return lhs >= rhs
        elif self is Comparison.LESS_THAN:
            return lhs < rhs
        elif self is Comparison.GREATER_THAN:
            return lhs > rhs
        else:
            return lhs == rhs

    def __str__(self) -> str:
        return self.value


class Rollable:
    def roll(self, rng: random.Random, verbose: bool = False) -> int:
        raise NotImplementedError

    def max(self) -> int:
        """Exclusive upper bound on roll(); sizes the simulation histogram."""
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.describe()


class Die(Rollable):
    def __init__(self, sides: int) -> None:
        if sides < 2:
            raise DegenerateDieError("attempted to build a die with %s faces" % sides)
        self._sides = int(sides)

    @property
    def sides(self) -> int:
        return self._sides

    def roll(self, rng: random.Random, verbose: bool = False) -> int:
        # faces run 1..sides-1, so max() stays an exclusive bound
        sample = rng.randint(1, self._sides - 1)
        if verbose:
            logger.debug("%s rolled a %s", self, sample)
        return sample

    def max(self) -> int:
        return self._sides

    def describe(self) -> str:
        return "d%s" % self._sides

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Die) and other._sides == self._sides

    def __hash__(self) -> int:
        return hash((Die, self._sides))


class DiceSet(Rollable):
    EMPTY_TEXT = "<empty DiceSet>"
    MAX_TERM_DICE = 10000

    def __init__(self, dice: typing.Iterable[Die] = (), modifier: int = 0) -> None:
        self._dice = tuple(dice)
        if modifier < 0:
            raise DiceRollError("modifier must be non-negative, got %s" % modifier)
        # a flat bonus without any die would sit outside max()
        self._modifier = int(modifier) if self._dice else 0

    @classmethod
    def empty(cls) -> "DiceSet":
        return cls()

    @classmethod
    def of(cls, count: int, sides: int, modifier: int = 0) -> "DiceSet":
        """Build ``count`` dice of ``sides`` faces.

        Dice with one face or less contribute nothing, so they are dropped
        together with the term's modifier and the empty set is returned.
        Terms of more than ``MAX_TERM_DICE`` dice are dropped the same way.
        """
        if sides <= 1 or count <= 0:
            return cls.empty()
        if count > cls.MAX_TERM_DICE:
            logger.debug(
                "dropping %sd%s: more than %s dice", count, sides, cls.MAX_TERM_DICE
            )
            return cls.empty()
        die = Die(sides)
        return cls([die] * count, modifier)

    @classmethod
    def concat(cls, *sets: "DiceSet") -> "DiceSet":
        return cls(
            itertools.chain.from_iterable(s.dice for s in sets),
            sum(s.modifier for s in sets),
        )

    @property
    def dice(self) -> typing.Tuple[Die, ...]:
        return self._dice

    @property
    def modifier(self) -> int:
        return self._modifier

    def roll(self, rng: random.Random, verbose: bool = False) -> int:
        value = sum(die.roll(rng, verbose) for die in self._dice) + self._modifier
        if verbose:
            logger.debug("%s total value %s", self, value)
        return value

    def max(self) -> int:
        return sum(die.sides for die in self._dice) + self._modifier

    def groups(self) -> typing.List[typing.Tuple[int, int]]:
        """(sides, count) pairs sorted by face count."""
        counts: typing.Dict[int, int] = {}
        for die in self._dice:
            counts.setdefault(die.sides, 0)
            counts[die.sides] += 1
        return sorted(counts.items())

    def describe(self) -> str:
        if not self._dice:
            return self.EMPTY_TEXT
        result = ",".join("%sd%s" % (count, sides) for sides, count in self.groups())
        if self._modifier:
            result += "+%s" % self._modifier
        return result

    def __add__(self, other: "DiceSet") -> "DiceSet":
        if not isinstance(other, DiceSet):
            return NotImplemented
        return DiceSet.concat(self, other)

    def __len__(self) -> int:
        return len(self._dice)

    def __iter__(self) -> typing.Iterator[Die]:
        return iter(self._dice)

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, DiceSet)
            and self.groups() == other.groups()
            and self._modifier == other._modifier
        )

    def __hash__(self) -> int:
        return hash((DiceSet, tuple(self.groups()), self._modifier))


class Decision(Rollable):
    def __init__(
        self,
        operator: typing.Union[Comparison, str],
        decision_dice: DiceSet,
        decision_value: int,
        dice: DiceSet,
    ) -> None:
        if not isinstance(operator, Comparison):
            operator = Comparison.parse(operator)
        if decision_value < 0:
            raise DiceRollError(
                "decision value must be non-negative, got %s" % decision_value
            )
        self._operator = operator
        self._decision_dice = decision_dice
        self._decision_value = int(decision_value)
        self._dice = dice

    @property
    def operator(self) -> Comparison:
        return self._operator

    @property
    def decision_dice(self) -> DiceSet:
        return self._decision_dice

    @property
    def decision_value(self) -> int:
        return self._decision_value

    @property
    def dice(self) -> DiceSet:
        return self._dice

    def replace(self, **changes: typing.Any) -> "Decision":
        fields = {
            "operator": self._operator,
            "decision_dice": self._decision_dice,
            "decision_value": self._decision_value,
            "dice": self._dice,
        }
        unknown = set(changes) - set(fields)
        if unknown:
            raise TypeError("unknown Decision fields: %s" % ", ".join(sorted(unknown)))
        fields.update(changes)
        return Decision(**fields)

    def roll(self, rng: random.Random, verbose: bool = False) -> int:
        trigger = self._decision_dice.roll(rng, verbose)
        should_roll = self._operator.evaluate(trigger, self._decision_value)
        if verbose:
            logger.debug("%s should roll dice %s", self, should_roll)
        if should_roll:
            return self._dice.roll(rng, verbose)
        return 0

    def max(self) -> int:
        # sized by the payoff even though 0 is the usual outcome
        return self._dice.max()

    def describe(self) -> str:
        return "if %s %s %s then %s" % (
            self._decision_dice.describe(),
            self._operator,
            self._decision_value,
            self._dice.describe(),
        )

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Decision) and (
            self._operator,
            self._decision_dice,
            self._decision_value,
            self._dice,
        ) == (
            other._operator,
            other._decision_dice,
            other._decision_value,
            other._dice,
        )

    def __hash__(self) -> int:
        return hash(
            (
                Decision,
                self._operator,
                self._decision_dice,
                self._decision_value,
                self._dice,
            )
        )


class DecisionSet(Rollable):
    EMPTY_TEXT = "<empty DecisionSet>"

    def __init__(self, decisions: typing.Iterable[Decision] = ()) -> None:
        self._decisions = tuple(decisions)

    @property
    def decisions(self) -> typing.Tuple[Decision, ...]:
        return self._decisions

    def append(self, decision: Decision) -> "DecisionSet":
        return DecisionSet(self._decisions + (decision,))

    def roll(self, rng: random.Random, verbose: bool = False) -> int:
        value = sum(decision.roll(rng, verbose) for decision in self._decisions)
        if verbose:
            logger.debug("%s total value %s", self, value)
        return value

    def max(self) -> int:
        return sum(decision.max() for decision in self._decisions)

    def describe(self) -> str:
        if not self._decisions:
            return self.EMPTY_TEXT
        return ",".join(decision.describe() for decision in self._decisions)

    def __len__(self) -> int:
        return len(self._decisions)

    def __iter__(self) -> typing.Iterator[Decision]:
        return iter(self._decisions)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DecisionSet) and self._decisions == other._decisions

    def __hash__(self) -> int:
        return hash((DecisionSet, self._decisions))
