# portable_settings/core/storage.py

from __future__ import annotations

from pathlib import Path
from typing import Optional

from platformdirs import user_data_dir

from portable_settings.config import SETTINGS_FILE_SUFFIX, env_home
from portable_settings.core.errors import StorageUnavailable
from portable_settings.utils.identity import ApplicationIdentity
from portable_settings.utils.logger import logger


def user_app_data_root() -> Path:
    """Per-user application data root (roaming profile on Windows)."""
    override = env_home()
    if override:
        return Path(override).expanduser()
    return Path(user_data_dir(roaming=True))


def get_settings_file_name(identity: ApplicationIdentity) -> str:
    return identity.product_name + SETTINGS_FILE_SUFFIX


def _ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageUnavailable(f"Cannot create settings folder {path}: {e}") from e


def get_storage_directory(identity: ApplicationIdentity, root: Optional[Path] = None) -> Path:
    """
    <root>/<vendor>/<product>, created on demand.

    Creation problems are logged and the computed path is returned anyway;
    the caller finds out for real when the first save fails.
    """
    base = Path(root) if root is not None else user_app_data_root()
    path = base / identity.vendor_name / identity.product_name
    if not path.is_dir():
        try:
            _ensure_dir(path)
            logger.info("Created settings folder %s", path)
        except StorageUnavailable as e:
            logger.warning("%s", e)
    return path
