# portable_settings/core/provider.py

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from portable_settings.core.document import SettingsStore
from portable_settings.core.models import PersistResult, SettingDeclaration
from portable_settings.core.settings_io import ChangeLike, read, write
from portable_settings.utils.identity import ApplicationIdentity, resolve_identity
from portable_settings.utils.logger import logger


class PortableSettingsProvider:
    """
    Settings provider that keeps user settings in
    <app data>/<vendor>/<product>/<product>.exe.config instead of a
    per-machine store.

    Reads never fail (defaults fill the gaps) and writes never raise; a failed
    save is logged and remembered in `last_error`.
    """

    def __init__(
        self,
        identity: Optional[ApplicationIdentity] = None,
        *,
        root: Optional[Path] = None,
        store: Optional[SettingsStore] = None,
    ):
        self.identity = identity or (store.identity if store is not None else resolve_identity())
        self.store = store or SettingsStore(self.identity, root=root)
        self._name: Optional[str] = None
        self.last_error: Optional[str] = None
        self.last_result: Optional[PersistResult] = None

    def initialize(self, provider_name: Optional[str] = None, host_options: Optional[Mapping[str, Any]] = None) -> None:
        # Host options are accepted for compatibility; only the name is kept.
        self._name = provider_name or None
        if host_options:
            logger.info("Ignoring provider options: %s", ", ".join(sorted(host_options)))

    @property
    def name(self) -> str:
        return self._name or self.application_name

    @property
    def application_name(self) -> str:
        return self.identity.application_name

    @property
    def description(self) -> str:
        return f"Portable settings for {self.identity.product_name}"

    @property
    def settings_path(self) -> Path:
        return self.store.path

    def get_values(self, declarations: Iterable[SettingDeclaration]) -> Dict[str, Any]:
        return read(self.store, declarations)

    def set_values(self, changes: Mapping[str, ChangeLike]) -> bool:
        self.last_error = None
        result = write(self.store, changes)
        self.last_result = result
        if not result.ok:
            self.last_error = result.error
        return result.ok
