# portable_settings/core/app_settings.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

from portable_settings.core.codecs import SCALAR, STRING_LIST
from portable_settings.core.models import SerializeAs, SettingChange, SettingDeclaration, SettingType
from portable_settings.core.provider import PortableSettingsProvider
from portable_settings.utils.logger import logger

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _to_bool(text: str) -> bool:
    t = text.strip().lower()
    if t in _TRUE:
        return True
    if t in _FALSE:
        return False
    raise ValueError(f"not a boolean: {text!r}")


@dataclass(frozen=True)
class SettingProperty:
    """
    A typed setting as the host application sees it.

    python_type is one of str, int, float, bool or list (list of strings,
    stored as an Xml fragment).
    """
    name: str
    python_type: type = str
    default: Any = None

    @property
    def is_list(self) -> bool:
        return self.python_type is list

    def declaration(self) -> SettingDeclaration:
        if self.is_list:
            default = STRING_LIST.encode(self.default) if self.default is not None else None
            return SettingDeclaration(self.name, SettingType.STRING_LIST, default)
        default = SCALAR.encode(self.default) if self.default is not None else None
        return SettingDeclaration(self.name, SettingType.SCALAR, default)

    def empty(self) -> Any:
        if self.default is not None:
            return list(self.default) if self.is_list else self.default
        return [] if self.is_list else self.python_type()

    def coerce(self, value: Any) -> Any:
        if self.is_list:
            if isinstance(value, str) or not isinstance(value, Iterable):
                raise TypeError(f"{self.name} expects a list of strings")
            items = list(value)
            if not all(isinstance(i, str) for i in items):
                raise TypeError(f"{self.name} expects a list of strings")
            return items
        if isinstance(value, str) and self.python_type is not str:
            return self.from_stored(value)
        if self.python_type is bool:
            return bool(value)
        return self.python_type(value)

    def from_stored(self, raw: Any) -> Any:
        if self.is_list:
            return list(raw) if isinstance(raw, list) else self.empty()
        text = raw if isinstance(raw, str) else ""
        if self.python_type is str:
            return text
        if self.python_type is bool:
            return _to_bool(text)
        return self.python_type(text.strip())

    def to_change(self, value: Any) -> SettingChange:
        if self.is_list:
            return SettingChange(list(value), SerializeAs.XML)
        return SettingChange(SCALAR.encode(value), SerializeAs.STRING)


class ApplicationSettings:
    """
    Typed, dict-like view over a provider.

        settings = ApplicationSettings(provider, viewer_properties())
        settings["Language"] = 2
        settings.Language          # same thing
        settings.save()

    Values load on first access. Only values changed since the last
    load/save are written.
    """

    def __init__(self, provider: PortableSettingsProvider, properties: Iterable[SettingProperty]):
        self._provider = provider
        self._properties: Dict[str, SettingProperty] = {p.name: p for p in properties}
        self._values: Optional[Dict[str, Any]] = None
        self._dirty: set = set()

    # ---------- loading ----------

    def _load(self) -> Dict[str, Any]:
        if self._values is None:
            raw = self._provider.get_values(p.declaration() for p in self._properties.values())
            values: Dict[str, Any] = {}
            for name, prop in self._properties.items():
                try:
                    values[name] = prop.from_stored(raw.get(name, ""))
                except (TypeError, ValueError) as e:
                    if raw.get(name, "") != "":
                        logger.warning("Setting %s has an unusable value (%s); using default", name, e)
                    values[name] = prop.empty()
            self._values = values
        return self._values

    def reload(self) -> None:
        self._values = None
        self._dirty.clear()

    # ---------- access ----------

    def __getitem__(self, name: str) -> Any:
        if name not in self._properties:
            raise KeyError(name)
        return self._load()[name]

    def __setitem__(self, name: str, value: Any) -> None:
        prop = self._properties.get(name)
        if prop is None:
            raise KeyError(name)
        values = self._load()
        new = prop.coerce(value)
        if values.get(name) != new:
            values[name] = new
            self._dirty.add(name)

    def __getattr__(self, name: str) -> Any:
        props = self.__dict__.get("_properties") or {}
        if name in props:
            return self[name]
        raise AttributeError(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_") and name in self.__dict__.get("_properties", {}):
            self[name] = value
        else:
            object.__setattr__(self, name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def get(self, name: str, default: Any = None) -> Any:
        return self[name] if name in self._properties else default

    @property
    def dirty(self) -> List[str]:
        return sorted(self._dirty)

    @property
    def last_error(self) -> Optional[str]:
        return self._provider.last_error

    # ---------- persistence ----------

    def save(self) -> bool:
        if not self._dirty:
            return True
        values = self._load()
        changes = {name: self._properties[name].to_change(values[name]) for name in sorted(self._dirty)}
        ok = self._provider.set_values(changes)
        result = self._provider.last_result
        if result is not None and result.saved:
            self._dirty.difference_update(n for n in changes if n not in result.skipped)
        return ok

    def reset(self) -> bool:
        """Put every setting back to its default and save."""
        values = self._load()
        for name, prop in self._properties.items():
            values[name] = prop.empty()
            self._dirty.add(name)
        return self.save()


def viewer_properties() -> List[SettingProperty]:
    """Settings kept by the message viewer window."""
    return [
        SettingProperty("WindowPosition", str, "0, 0, 0, 0"),
        SettingProperty("WindowState", str, "Normal"),
        SettingProperty("GenereateHyperLinks", bool, False),
        SettingProperty("Language", int, 0),
        SettingProperty("SaveDirectory", str, ""),
        SettingProperty("InitialDirectory", str, ""),
        SettingProperty("RecentFiles", list, []),
    ]
