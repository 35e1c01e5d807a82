# portable_settings/core/document.py

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterator, Optional

from portable_settings.config import (
    CLIENT_SECTION_TYPE,
    CONFIG_NODE,
    GROUP_NODE,
    INDENT,
    ROOT_NODE,
    SECTION_NODE,
    SETTING_NODE,
    USER_GROUP_TYPE,
    USER_NODE,
    XML_DECLARATION,
)
from portable_settings.core.errors import DocumentUnreadable, PersistFailure
from portable_settings.core.models import LoadOutcome, PersistResult
from portable_settings.core.storage import get_settings_file_name, get_storage_directory
from portable_settings.utils.identity import ApplicationIdentity
from portable_settings.utils.logger import logger


def build_scaffold(section_key: str) -> ET.ElementTree:
    """Minimal <configuration> tree with an empty application section."""
    root = ET.Element(ROOT_NODE)

    config = ET.SubElement(root, CONFIG_NODE)
    group = ET.SubElement(config, GROUP_NODE, {"name": USER_NODE, "type": USER_GROUP_TYPE})
    ET.SubElement(group, SECTION_NODE, {"name": section_key, "type": CLIENT_SECTION_TYPE})

    user = ET.SubElement(root, USER_NODE)
    ET.SubElement(user, section_key)
    return ET.ElementTree(root)


class SettingsStore:
    """
    Holds the one in-memory settings document for an application.

    The host creates a store once (composition root) and hands it to the
    read/write functions. The document is loaded lazily on first access and
    kept for the lifetime of the store; edits made to the file afterwards by
    someone else are not noticed.

    Not thread-safe.
    """

    def __init__(self, identity: ApplicationIdentity, root: Optional[Path] = None):
        self.identity = identity
        self.root = Path(root) if root is not None else None
        self._directory: Optional[Path] = None
        self._tree: Optional[ET.ElementTree] = None
        self.load_outcome: Optional[LoadOutcome] = None

    # ---------- locations ----------

    @property
    def directory(self) -> Path:
        if self._directory is None:
            self._directory = get_storage_directory(self.identity, self.root)
        return self._directory

    @property
    def path(self) -> Path:
        return self.directory / get_settings_file_name(self.identity)

    @property
    def section_key(self) -> str:
        return self.identity.section_key

    # ---------- document ----------

    @property
    def loaded(self) -> bool:
        return self._tree is not None

    @property
    def document(self) -> ET.ElementTree:
        if self._tree is None:
            path = self.path
            try:
                self._tree = self._parse(path)
                self.load_outcome = LoadOutcome(bootstrapped=False, path=path)
                logger.info("Settings loaded from %s", path)
            except DocumentUnreadable as e:
                # Bootstrap in memory only; the first save creates the file.
                self._tree = build_scaffold(self.section_key)
                self.load_outcome = LoadOutcome(bootstrapped=True, path=path, error=str(e))
                logger.info("Starting with empty settings: %s", e)
        return self._tree

    @staticmethod
    def _parse(path: Path) -> ET.ElementTree:
        # Keep comments from hand-edited files so the next save writes them back
        parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
        try:
            return ET.parse(path, parser=parser)
        except (OSError, ET.ParseError) as e:
            raise DocumentUnreadable(f"{path}: {e}") from e

    def section(self) -> Optional[ET.Element]:
        """The <userSettings>/<app section> element, or None when the file lacks it."""
        user = self.document.getroot().find(USER_NODE)
        if user is None:
            return None
        return user.find(self.section_key)

    def ensure_section(self) -> ET.Element:
        """
        Return the application section, repairing the document when a
        hand-edited file lost it. Only the missing nodes are added.
        """
        section = self.section()
        if section is not None:
            return section

        root = self.document.getroot()
        logger.warning("Settings file %s has no <%s> section; repairing", self.path, self.section_key)

        config = root.find(CONFIG_NODE)
        if config is None:
            config = ET.Element(CONFIG_NODE)
            root.insert(0, config)
        group = next((g for g in config.findall(GROUP_NODE) if g.get("name") == USER_NODE), None)
        if group is None:
            group = ET.SubElement(config, GROUP_NODE, {"name": USER_NODE, "type": USER_GROUP_TYPE})
        if not any(s.get("name") == self.section_key for s in group.findall(SECTION_NODE)):
            ET.SubElement(group, SECTION_NODE, {"name": self.section_key, "type": CLIENT_SECTION_TYPE})

        user = root.find(USER_NODE)
        if user is None:
            user = ET.SubElement(root, USER_NODE)
        return ET.SubElement(user, self.section_key)

    def iter_settings(self) -> Iterator[ET.Element]:
        section = self.section()
        if section is None:
            return iter(())
        return iter(section.findall(SETTING_NODE))

    def find_setting(self, name: str) -> Optional[ET.Element]:
        for node in self.iter_settings():
            if node.get("name") == name:
                return node
        return None

    # ---------- persistence ----------

    def to_xml(self) -> str:
        root = self.document.getroot()
        ET.indent(root, space=INDENT)
        return XML_DECLARATION + "\n" + ET.tostring(root, encoding="unicode") + "\n"

    def _write_atomic(self, text: str) -> None:
        path = self.path
        tmp = path.with_name(path.name + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            os.replace(tmp, path)
        except OSError as e:
            try:
                if tmp.exists():
                    tmp.unlink()
            except OSError:
                pass
            raise PersistFailure(f"Error writing configuration file to disk: {e}") from e

    def save(self) -> PersistResult:
        """Write the whole document. Failures are logged and reported, never raised."""
        path = self.path
        try:
            self._write_atomic(self.to_xml())
        except PersistFailure as e:
            logger.error("%s", e)
            return PersistResult(ok=False, path=path, error=str(e))
        logger.info("Settings saved to %s", path)
        return PersistResult(ok=True, path=path, saved=True)
