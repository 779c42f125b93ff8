import logging
import typing

import lark

import dicehist.roll as roll

logger = logging.getLogger(__name__)

_TERM_SHAPE = ("INT", "_D", "INT")
_OFFSET_SHAPE = ("_PLUS", "INT")


@lark.v_args(inline=True)
class _RollParser(lark.Transformer):
    def start(self, *terms: roll.DiceSet) -> roll.DiceSet:
        return roll.DiceSet.concat(*terms)

    def term(self, count: lark.Token, sides: lark.Token, offset: int = 0) -> roll.DiceSet:
        return roll.DiceSet.of(int(count), int(sides), offset)

    def offset(self, value: lark.Token) -> int:
        return int(value)


_grammar = lark.Lark.open("notation.lark", rel_to=__file__, parser="lalr", lexer="basic")


def _types(tokens: typing.Sequence[lark.Token]) -> typing.Tuple[str, ...]:
    return tuple(token.type for token in tokens)


def find_terms(text: str) -> typing.List[str]:
    """Every well-formed ``NdS[+O]`` term in ``text``, leftmost first.

    Terms may be surrounded by anything; text between them is skipped.
    """
    tokens = list(_grammar.lex(text, dont_ignore=True))
    terms = []
    i = 0
    while i < len(tokens):
        if _types(tokens[i : i + 3]) != _TERM_SHAPE:
            i += 1
            continue
        end = i + 3
        if _types(tokens[end : end + 2]) == _OFFSET_SHAPE:
            end += 2
        terms.append("".join(tokens[i:end]))
        i = end
    return terms


def parse(text: str) -> roll.DiceSet:
    terms = find_terms(text)
    if not terms:
        result = roll.DiceSet.empty()
    else:
        try:
            result = _RollParser().transform(_grammar.parse(",".join(terms)))
        except lark.exceptions.VisitError as e:
            raise e.orig_exc
    logger.debug("parsed %r into %s", text, result)
    return result
