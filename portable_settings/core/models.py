# portable_settings/core/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from portable_settings.core.errors import CodecError


class SettingType(Enum):
    SCALAR = "Scalar"
    STRING_LIST = "StringList"


class SerializeAs(Enum):
    STRING = "String"
    XML = "Xml"

    @classmethod
    def parse(cls, raw: Union[str, "SerializeAs", SettingType]) -> "SerializeAs":
        """Accepts SerializeAs, SettingType or their names. Raises CodecError otherwise."""
        if isinstance(raw, SerializeAs):
            return raw
        if isinstance(raw, SettingType):
            return cls.XML if raw is SettingType.STRING_LIST else cls.STRING
        if isinstance(raw, str):
            text = raw.strip().lower()
            if text in _STRING_NAMES:
                return cls.STRING
            if text in _XML_NAMES:
                return cls.XML
        raise CodecError(f"Unknown serialization strategy {raw!r}")


_STRING_NAMES = ("string", "scalar")
_XML_NAMES = ("xml", "stringlist", "structuredlist")


@dataclass(frozen=True)
class SettingDeclaration:
    """A named, typed setting the host wants to read."""
    name: str
    declared_type: SettingType = SettingType.SCALAR
    default_value: Optional[str] = None
    serialize_as: Optional[SerializeAs] = None

    @property
    def strategy(self) -> SerializeAs:
        if self.serialize_as is not None:
            return self.serialize_as
        return SerializeAs.XML if self.declared_type is SettingType.STRING_LIST else SerializeAs.STRING


@dataclass(frozen=True)
class SettingChange:
    """A value to upsert. For Xml settings `value` is a list of strings or a serialized fragment."""
    value: Any
    serialize_as: SerializeAs = SerializeAs.STRING


# ---------- lookup outcomes ----------

@dataclass(frozen=True)
class Found:
    value: Any


@dataclass(frozen=True)
class Missing:
    reason: str = "not found"


LookupResult = Union[Found, Missing]


@dataclass(frozen=True)
class PersistResult:
    ok: bool                 # every change applied and on disk
    path: Path
    saved: bool = False      # the document itself reached disk
    error: Optional[str] = None
    written: int = 0
    skipped: tuple = ()


@dataclass(frozen=True)
class LoadOutcome:
    bootstrapped: bool
    path: Path
    error: Optional[str] = None
