# portable_settings/utils/identity.py

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import Optional

from portable_settings.config import DEFAULT_VENDOR, SECTION_KEY_SUFFIX


@dataclass(frozen=True)
class ApplicationIdentity:
    vendor_name: str
    product_name: str
    executable_base_name: str
    application_name: str

    @property
    def section_key(self) -> str:
        return self.application_name + SECTION_KEY_SUFFIX


def _executable_base_name(executable: Optional[str] = None) -> str:
    exe = executable if executable is not None else (sys.argv[0] if sys.argv and sys.argv[0] else sys.executable)
    return Path(exe or "python").stem or "python"


def _author_from_email(raw: str) -> str:
    # "Jane Doe <jane@example.com>, Other <o@example.com>" -> "Jane Doe"
    first = raw.split(",")[0]
    m = re.match(r"\s*\"?([^\"<]+?)\"?\s*<", first)
    return m.group(1).strip() if m else ""


def _read_metadata(distribution: Optional[str]) -> dict:
    if not distribution:
        return {}
    try:
        md = metadata.metadata(distribution)
    except metadata.PackageNotFoundError:
        return {}
    vendor = (md.get("Author") or "").strip() or _author_from_email(md.get("Author-email") or "")
    return {
        "vendor": vendor,
        "product": (md.get("Name") or "").strip(),
    }


def _safe_identifier(name: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9_.]+", "_", name).strip("._") or "App"
    # XML element names cannot start with a digit
    if not (safe[0].isalpha() or safe[0] == "_"):
        safe = "_" + safe
    return safe


def resolve_identity(
    distribution: Optional[str] = None,
    *,
    vendor: Optional[str] = None,
    product: Optional[str] = None,
    application: Optional[str] = None,
    executable: Optional[str] = None,
) -> ApplicationIdentity:
    """
    Derive the (vendor, product) pair that names the settings folder.

    Explicit arguments win, then the installed distribution's metadata, then
    the fallbacks: DEFAULT_VENDOR for the vendor and the running executable's
    file name (no extension) for the product. Never raises.
    """
    exe_name = _executable_base_name(executable)
    md = _read_metadata(distribution)

    vendor_name = (vendor or md.get("vendor") or "").strip() or DEFAULT_VENDOR
    product_name = (product or md.get("product") or "").strip() or exe_name
    app_name = _safe_identifier((application or "").strip() or product_name)

    return ApplicationIdentity(
        vendor_name=vendor_name,
        product_name=product_name,
        executable_base_name=exe_name,
        application_name=app_name,
    )
