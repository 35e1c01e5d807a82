# portable_settings/core/codecs.py

"""
Serialization strategies for setting values.

Two shapes are supported:
  - String: the value is the text content of <value>.
  - Xml: the value is an ordered list of strings stored as an
    <ArrayOfString><string>..</string></ArrayOfString> fragment nested inside
    <value>. The fragment never carries its own XML declaration.

Xml settings whose declared type is not a string list decode to "".
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Any, Iterable, List, Optional

from portable_settings.config import STRING_LIST_ITEM, STRING_LIST_ROOT, XSD_NS, XSI_NS
from portable_settings.core.errors import CodecError
from portable_settings.core.models import SerializeAs, SettingDeclaration, SettingType

_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>\s*", re.IGNORECASE)
# Anything outside the XML 1.0 Char production
_ILLEGAL_XML_RE = re.compile("[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


def strip_xml_declaration(text: str) -> str:
    return _DECLARATION_RE.sub("", text or "", count=1)


def check_xml_text(text: str, what: str = "value") -> str:
    """Return text unchanged, or raise CodecError if it cannot be stored in XML 1.0."""
    m = _ILLEGAL_XML_RE.search(text)
    if m:
        raise CodecError(f"{what} contains a character XML cannot store: U+{ord(m.group()):04X}")
    return text


def _local(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _clear_children(node: ET.Element) -> None:
    for child in list(node):
        node.remove(child)
    node.text = None


class ScalarCodec:
    serialize_as = SerializeAs.STRING

    def encode(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "True" if value else "False"
        return str(value)

    def decode(self, text: Optional[str]) -> str:
        return text or ""

    def decode_node(self, value_node: ET.Element) -> str:
        return "".join(value_node.itertext())

    def encode_into(self, value_node: ET.Element, value: Any) -> None:
        text = check_xml_text(self.encode(value))
        _clear_children(value_node)
        value_node.text = text


class StringListCodec:
    serialize_as = SerializeAs.XML

    def to_element(self, items: Iterable[str]) -> ET.Element:
        root = ET.Element(STRING_LIST_ROOT)
        root.set("xmlns:xsi", XSI_NS)
        root.set("xmlns:xsd", XSD_NS)
        for item in items:
            if not isinstance(item, str):
                raise CodecError(f"String list items must be str, got {type(item).__name__}")
            ET.SubElement(root, STRING_LIST_ITEM).text = check_xml_text(item, "list item")
        return root

    def encode(self, items: Iterable[str]) -> str:
        if isinstance(items, str):
            raise CodecError("Expected a list of strings, got a single string")
        return ET.tostring(self.to_element(items), encoding="unicode")

    def parse_fragment(self, fragment: str) -> ET.Element:
        body = strip_xml_declaration(fragment).strip()
        if not body:
            raise CodecError("Empty string list fragment")
        try:
            return ET.fromstring(body)
        except ET.ParseError as e:
            raise CodecError(f"Malformed string list fragment: {e}") from e

    def decode_element(self, root: ET.Element) -> List[str]:
        if _local(root.tag) != STRING_LIST_ROOT:
            raise CodecError(f"Unexpected fragment root <{_local(root.tag)}>")
        # <string/> and <string xsi:nil="true"/> both come back as ""
        return [child.text or "" for child in root if _local(child.tag) == STRING_LIST_ITEM]

    def decode(self, fragment: Optional[str]) -> List[str]:
        return self.decode_element(self.parse_fragment(fragment or ""))

    def decode_node(self, value_node: ET.Element) -> List[str]:
        children = [c for c in value_node if isinstance(c.tag, str)]
        if children:
            return self.decode_element(children[0])
        # Hand-edited files sometimes hold the fragment as escaped text
        return self.decode(value_node.text)

    def fragment_element(self, value: Any) -> ET.Element:
        if isinstance(value, str):
            return self.parse_fragment(value)
        if value is None:
            return self.to_element([])
        return self.to_element(value)

    def encode_into(self, value_node: ET.Element, value: Any) -> None:
        element = self.fragment_element(value)
        _clear_children(value_node)
        value_node.append(element)


SCALAR = ScalarCodec()
STRING_LIST = StringListCodec()


def codec_for(strategy: SerializeAs):
    return SCALAR if strategy is SerializeAs.STRING else STRING_LIST


def _shape(declaration: SettingDeclaration, value: Any) -> Any:
    if declaration.strategy is SerializeAs.XML and declaration.declared_type is not SettingType.STRING_LIST:
        return ""
    return value


def decode_stored(declaration: SettingDeclaration, value_node: ET.Element) -> Any:
    """Decode a stored <value> node. Raises CodecError on mismatch."""
    return _shape(declaration, codec_for(declaration.strategy).decode_node(value_node))


def decode_default(declaration: SettingDeclaration, default_text: str) -> Any:
    """Decode a declared default string through the setting's codec. Raises CodecError."""
    return _shape(declaration, codec_for(declaration.strategy).decode(default_text))
