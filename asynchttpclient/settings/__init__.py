"""
Settings for the executor and the ``asynchttp`` command.

Every value is stored with the priority it was set with, and is only replaced
by a value of equal or higher priority. That lets :class:`Settings` hold the
defaults of :mod:`asynchttpclient.settings.default_settings`, values given by
the application and ``-s`` overrides from the command line, applied in any
order.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from importlib import import_module
from typing import TYPE_CHECKING, Any, Union

from asynchttpclient.settings import default_settings

if TYPE_CHECKING:
    from types import ModuleType


SETTINGS_PRIORITIES: dict[str, int] = {
    "default": 0,
    "project": 20,
    "cmdline": 40,
}

_SettingsInputT = Union[Mapping[str, Any], str, None]


def get_settings_priority(priority: int | str) -> int:
    if isinstance(priority, str):
        return SETTINGS_PRIORITIES[priority]
    return priority


class BaseSettings(Mapping[str, Any]):
    """A read-mostly mapping of setting names to values, with priorities.

    Missing settings read as ``None``. ``priority`` arguments accept a name
    from :data:`SETTINGS_PRIORITIES` or an integer.
    """

    def __init__(self, values: _SettingsInputT = None, priority: int | str = "project"):
        self._values: dict[str, tuple[Any, int]] = {}
        self.update(values, priority)

    def __getitem__(self, name: str) -> Any:
        if name not in self._values:
            return None
        return self._values[name][0]

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get(self, name: str, default: Any = None) -> Any:
        value = self[name]
        return default if value is None else value

    def getbool(self, name: str, default: bool = False) -> bool:
        """
        ``1``, ``'1'``, ``True``, ``'True'`` and ``'true'`` are true, while
        ``0``, ``'0'``, ``False``, ``'False'``, ``'false'`` and ``None`` are
        false. Any other string raises :exc:`ValueError`.
        """
        got = self.get(name, default)
        try:
            return bool(int(got))
        except ValueError:
            if got in ("True", "true"):
                return True
            if got in ("False", "false"):
                return False
            raise ValueError(
                f"Invalid boolean value for {name}: {got!r}, supported values "
                "are 0/1, True/False, '0'/'1', 'True'/'False' and 'true'/'false'"
            )

    def getfloat(self, name: str, default: float = 0.0) -> float:
        return float(self.get(name, default))

    def getdict(self, name: str, default: dict[str, Any] | None = None) -> dict[str, Any]:
        """Return a new :class:`dict`; a string value is parsed as a JSON object."""
        value = self.get(name, default or {})
        if isinstance(value, str):
            value = json.loads(value)
        return dict(value)

    def getpriority(self, name: str) -> int | None:
        if name not in self._values:
            return None
        return self._values[name][1]

    def set(self, name: str, value: Any, priority: int | str = "project") -> None:
        priority = get_settings_priority(priority)
        current = self.getpriority(name)
        if current is None or priority >= current:
            self._values[name] = (value, priority)

    def update(self, values: _SettingsInputT, priority: int | str = "project") -> None:
        if isinstance(values, str):
            values = json.loads(values)
        for name, value in (values or {}).items():
            self.set(name, value, priority)

    setdict = update

    def setmodule(self, module: ModuleType | str, priority: int | str = "project") -> None:
        """Store every upper-case global of ``module`` (or of its import path)."""
        if isinstance(module, str):
            module = import_module(module)
        for key in dir(module):
            if key.isupper():
                self.set(key, getattr(module, key), priority)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {dict(self)!r}>"


class Settings(BaseSettings):
    """:class:`BaseSettings` starting from the package defaults."""

    def __init__(self, values: _SettingsInputT = None, priority: int | str = "project"):
        super().__init__()
        self.setmodule(default_settings, "default")
        self.update(values, priority)
