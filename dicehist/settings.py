import os
import typing

import yaml

from .roll import DiceRollError
from .simulation import Reduction

DEFAULT_SETTINGS_FILE = os.path.join(os.path.dirname(__file__), "settings.default.yaml")
LOCAL_SETTINGS_FILE = "settings.yaml"


class SettingsError(DiceRollError):
    pass


def _is_int(value: typing.Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


_CHECKS: typing.Dict[str, typing.Tuple[typing.Callable[[typing.Any], bool], str]] = {
    "iterations": (lambda v: _is_int(v) and v > 0, "a positive integer"),
    "parallel": (lambda v: isinstance(v, bool), "true or false"),
    "workers": (
        lambda v: v is None or (_is_int(v) and v > 0),
        "null or a positive integer",
    ),
    "reduction": (
        lambda v: v in [r.value for r in Reduction],
        "one of " + ", ".join(r.value for r in Reduction),
    ),
    "seed": (lambda v: v is None or _is_int(v), "null or an integer"),
    "log_level": (lambda v: isinstance(v, str), "a logging level name"),
}


def _load_yaml(path: str) -> typing.Dict[str, typing.Any]:
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsError("%s: expected a mapping of settings" % path)
    return data


def _validate(path: str, settings: typing.Dict[str, typing.Any]) -> None:
    for key, value in settings.items():
        check, expected = _CHECKS[key]
        if not check(value):
            raise SettingsError(
                "%s: %s must be %s, got %r" % (path, key, expected, value)
            )


def load_settings(path: typing.Optional[str] = None) -> typing.Dict[str, typing.Any]:
    """Packaged defaults, overridden by ``path`` or by ./settings.yaml if present."""
    settings = _load_yaml(DEFAULT_SETTINGS_FILE)
    if path is None and os.path.exists(LOCAL_SETTINGS_FILE):
        path = LOCAL_SETTINGS_FILE
    if path is not None:
        if not os.path.exists(path):
            raise SettingsError("settings file %s not found" % path)
        overrides = _load_yaml(path)
        unknown = set(overrides) - set(settings)
        if unknown:
            raise SettingsError(
                "%s: unknown settings %s" % (path, ", ".join(sorted(unknown)))
            )
        _validate(path, overrides)
        settings.update(overrides)
    return settings
