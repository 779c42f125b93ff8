import argparse
import logging
import random
import sys
import typing

import dicehist.roll as roll
import dicehist.roll_parser as roll_parser
import dicehist.simulation as simulation
from dicehist.roll import DiceRollError
from dicehist.sanitizer import sanitize
from dicehist.settings import SettingsError, load_settings

logger = logging.getLogger("dicehist")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s"


def setup_logging(level: str) -> None:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise SettingsError("unknown log level %r" % level)
    logging.basicConfig(
        level=numeric_level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"
    )


def build_expression(
    text: str, condition: typing.Optional[typing.List[str]]
) -> roll.Rollable:
    dice = roll_parser.parse(text)
    if condition is None:
        return dice
    decision_text, operator, value = condition
    try:
        decision_value = int(value)
    except ValueError:
        raise DiceRollError("decision value must be an integer, got %r" % value)
    return roll.Decision(
        roll.Comparison.parse(operator),
        roll_parser.parse(decision_text),
        decision_value,
        dice,
    )


def sanitize_(args: argparse.Namespace, settings: typing.Dict[str, typing.Any]) -> int:
    print(sanitize(args.text))
    return 0


def describe_(args: argparse.Namespace, settings: typing.Dict[str, typing.Any]) -> int:
    print(build_expression(args.text, args.condition).describe())
    return 0


def roll_(args: argparse.Namespace, settings: typing.Dict[str, typing.Any]) -> int:
    expr = build_expression(args.text, args.condition)
    seed = settings["seed"] if args.seed is None else args.seed
    if args.verbose:
        logging.getLogger("dicehist").setLevel(logging.DEBUG)
    print("Input: %s" % expr)
    print("Result: %s" % expr.roll(random.Random(seed), verbose=args.verbose))
    return 0


def sim(args: argparse.Namespace, settings: typing.Dict[str, typing.Any]) -> int:
    expr = build_expression(args.text, args.condition)
    iterations = settings["iterations"] if args.iterations is None else args.iterations
    seed = settings["seed"] if args.seed is None else args.seed

    if args.parallel or settings["parallel"]:
        workers = settings["workers"] if args.workers is None else args.workers
        reduction = simulation.Reduction(args.reduction or settings["reduction"])
        pmf = simulation.simulate_parallel(
            expr, iterations, workers=workers, reduction=reduction, seed=seed
        )
        if not pmf:
            print(
                "No result: simulation workers could not be started.",
                file=sys.stderr,
            )
            return 1
    else:
        pmf = simulation.simulate(expr, iterations, random.Random(seed))

    data = simulation.pmf_frame(pmf)
    if args.csv:
        data.to_csv(args.csv, index=False)
        logger.info("wrote %s rows to %s", len(data), args.csv)
        return 0

    print("Input: %s" % expr)
    print(data.to_string(index=False))
    print("Mean: %.3f" % simulation.pmf_mean(pmf))
    return 0


def _add_expression_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("text", help="dice notation, e.g. 2d6,1d4+2")
    parser.add_argument(
        "--if",
        dest="condition",
        nargs=3,
        metavar=("DICE", "OP", "VALUE"),
        help="only roll TEXT when DICE compared with VALUE by OP holds",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dicehist",
        description="Estimate dice roll distributions by Monte Carlo simulation.",
    )
    parser.add_argument("--settings", help="YAML settings file")
    parser.add_argument("--log-level", help="logging level, e.g. DEBUG")
    commands = parser.add_subparsers(dest="command", required=True)

    sanitize_parser = commands.add_parser(
        "sanitize",
        help="strip characters that cannot be part of dice notation",
        description="""sanitize <text>

Drops every character that does not continue a valid NdS[+O] term.

Examples:
    dicehist sanitize "a1a0ada2a0a"   -> 10d20
    dicehist sanitize "2d6 + 3"       -> 2d6+3
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sanitize_parser.add_argument("text")
    sanitize_parser.set_defaults(handler=sanitize_)

    describe_parser = commands.add_parser(
        "describe", help="print the canonical form of an expression"
    )
    _add_expression_args(describe_parser)
    describe_parser.set_defaults(handler=describe_)

    roll_parser_ = commands.add_parser(
        "roll",
        help="roll an expression once",
        description="""roll <text> [--if DICE OP VALUE]

Rolls every die once and prints the total. A die with S faces
rolls 1 to S-1. With --if, TEXT is only rolled when the DICE roll
compared to VALUE holds; otherwise the result is 0.

Examples:
    dicehist roll 3d6
    dicehist roll 2d8+1 --if 1d20 ">=" 12 --verbose
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_expression_args(roll_parser_)
    roll_parser_.add_argument("--seed", type=int)
    roll_parser_.add_argument(
        "--verbose", action="store_true", help="log every die as it is rolled"
    )
    roll_parser_.set_defaults(handler=roll_)

    sim_parser = commands.add_parser(
        "sim",
        help="estimate the probability of every outcome",
        description="""sim <text> [--if DICE OP VALUE] [options]

Rolls the expression many times and prints the probability of
each outcome, indexed from 0.

Examples:
    dicehist sim 3d6
    dicehist sim 1d20 --if 1d20 ">" 12 --iterations 1000000 --parallel
    dicehist sim 2d6,1d4+2 --csv out.csv
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_expression_args(sim_parser)
    sim_parser.add_argument("--iterations", type=int)
    sim_parser.add_argument("--parallel", action="store_true")
    sim_parser.add_argument("--workers", type=int)
    sim_parser.add_argument(
        "--reduction", choices=[r.value for r in simulation.Reduction]
    )
    sim_parser.add_argument("--seed", type=int)
    sim_parser.add_argument("--csv", help="write the distribution to this CSV file")
    sim_parser.set_defaults(handler=sim)

    return parser


def main(argv: typing.Optional[typing.List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.settings)
        setup_logging(args.log_level or settings["log_level"])
        return args.handler(args, settings)
    except DiceRollError as e:
        print("error: %s" % e.args[0], file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
