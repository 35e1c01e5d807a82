# portable_settings/core/settings_io.py

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from portable_settings.config import SETTING_NODE, VALUE_NODE
from portable_settings.core.codecs import check_xml_text, codec_for, decode_default, decode_stored
from portable_settings.core.document import SettingsStore
from portable_settings.core.errors import CodecError
from portable_settings.core.models import (
    Found,
    LookupResult,
    Missing,
    PersistResult,
    SerializeAs,
    SettingChange,
    SettingDeclaration,
    SettingType,
)
from portable_settings.utils.logger import logger

ChangeLike = Union[SettingChange, Tuple[Any, Union[SerializeAs, SettingType, str]], List[str], Any]


# ---------- read path ----------

def lookup(store: SettingsStore, declaration: SettingDeclaration) -> LookupResult:
    node = store.find_setting(declaration.name)
    if node is None:
        return Missing("no such setting")
    value_node = node.find(VALUE_NODE)
    if value_node is None:
        return Missing("setting has no <value>")
    try:
        return Found(decode_stored(declaration, value_node))
    except CodecError as e:
        logger.warning("Ignoring stored value for %s: %s", declaration.name, e)
        return Missing(str(e))


def resolve_default(declaration: SettingDeclaration) -> Any:
    if declaration.default_value is None:
        return ""
    try:
        return decode_default(declaration, declaration.default_value)
    except CodecError as e:
        logger.warning("Default for %s is not valid: %s", declaration.name, e)
        return ""


def read_one(store: SettingsStore, declaration: SettingDeclaration) -> Any:
    result = lookup(store, declaration)
    if isinstance(result, Found):
        return result.value
    return resolve_default(declaration)


def read(store: SettingsStore, declarations: Iterable[SettingDeclaration]) -> Dict[str, Any]:
    """One value per declaration: stored, else decoded default, else ""."""
    return {d.name: read_one(store, d) for d in declarations}


# ---------- write path ----------

def _as_change(raw: ChangeLike) -> SettingChange:
    """SettingChange, (value, strategy) pair, bare list (Xml) or bare scalar (String)."""
    if isinstance(raw, SettingChange):
        return raw
    if isinstance(raw, tuple):
        try:
            value, strategy = raw
        except ValueError as e:
            raise CodecError(f"Expected (value, serializeAs), got {raw!r}") from e
        return SettingChange(value=value, serialize_as=SerializeAs.parse(strategy))
    if isinstance(raw, list):
        return SettingChange(value=raw, serialize_as=SerializeAs.XML)
    return SettingChange(value=raw, serialize_as=SerializeAs.STRING)


def upsert(store: SettingsStore, name: str, change: SettingChange) -> None:
    """Update the <value> of `name` in place, or append a new <setting>. Raises CodecError."""
    check_xml_text(name, "setting name")
    # Encode before touching the tree so a bad value leaves the document as it was.
    fresh = ET.Element(VALUE_NODE)
    codec_for(change.serialize_as).encode_into(fresh, change.value)

    node = store.find_setting(name)
    if node is None:
        node = ET.SubElement(
            store.ensure_section(),
            SETTING_NODE,
            {"name": name, "serializeAs": change.serialize_as.value},
        )
        node.append(fresh)
        return

    node.set("serializeAs", change.serialize_as.value)
    value_node = node.find(VALUE_NODE)
    if value_node is None:
        node.append(fresh)
    else:
        node[list(node).index(value_node)] = fresh


def write(store: SettingsStore, changes: Mapping[str, ChangeLike]) -> PersistResult:
    """
    Apply every change to the cached document, then save it once.

    `ok` is True only when every change was applied and the file was written;
    `saved` tells whether the file was written at all.
    """
    written = 0
    skipped = []
    for name, raw in changes.items():
        try:
            upsert(store, name, _as_change(raw))
            written += 1
        except CodecError as e:
            logger.warning("Not saving %s: %s", name, e)
            skipped.append(name)

    result = store.save()
    error = result.error
    if skipped and error is None:
        error = "Settings not saved: " + ", ".join(skipped)
    return PersistResult(
        ok=result.ok and not skipped,
        path=result.path,
        saved=result.saved,
        error=error,
        written=written,
        skipped=tuple(skipped),
    )
