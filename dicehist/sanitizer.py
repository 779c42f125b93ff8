"""Keystroke filter for dice notation.

Keeps the longest prefix of ``NdS[+O][,NdS[+O]]*`` that can be built from the
typed characters, dropping every character the grammar does not allow at the
current position.
"""
import enum
import typing


class State(enum.Enum):
    START = "start"
    NUM_D = "num_d"
    D = "d"
    SIDES = "sides"
    PLUS = "plus"
    OFFSET = "offset"


_DIGIT = "digit"
_OTHER = "other"

_TRANSITIONS: typing.Dict[typing.Tuple[State, str], State] = {
    (State.START, _DIGIT): State.NUM_D,
    (State.NUM_D, _DIGIT): State.NUM_D,
    (State.NUM_D, "d"): State.D,
    (State.D, _DIGIT): State.SIDES,
    (State.SIDES, _DIGIT): State.SIDES,
    (State.SIDES, "+"): State.PLUS,
    (State.SIDES, ","): State.START,
    (State.PLUS, _DIGIT): State.OFFSET,
    (State.OFFSET, _DIGIT): State.OFFSET,
    (State.OFFSET, ","): State.START,
}


def _char_class(ch: str) -> str:
    if ch.isascii() and ch.isdigit():
        return _DIGIT
    if ch in ("d", "+", ","):
        return ch
    return _OTHER


def transition(state: State, ch: str) -> typing.Tuple[bool, State]:
    """Return ``(accept, next_state)``; a rejected character keeps the state."""
    next_state = _TRANSITIONS.get((state, _char_class(ch)))
    if next_state is None:
        return False, state
    return True, next_state


def sanitize(text: str) -> str:
    state = State.START
    kept = []
    for ch in text:
        accept, state = transition(state, ch)
        if accept:
            kept.append(ch)
    return "".join(kept)
