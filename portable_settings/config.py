# portable_settings/config.py

import os

# Logger / log folder identity
APP_NAME = "Portable Settings"
APP_AUTHOR = "MsgViewer"

# Environment switches
ENV_HOME = "PORTABLE_SETTINGS_HOME"      # overrides the per-user data root
ENV_DEBUG = "PORTABLE_SETTINGS_DEBUG"    # "1" -> INFO logs + debug log file

# Identity fallbacks (used when distribution metadata carries nothing)
DEFAULT_VENDOR = "Veolia"

# Settings file: <product>.exe.config
SETTINGS_FILE_SUFFIX = ".exe.config"
SECTION_KEY_SUFFIX = ".Properties.Settings"

# Document scaffold
XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'
ROOT_NODE = "configuration"
CONFIG_NODE = "configSections"
GROUP_NODE = "sectionGroup"
SECTION_NODE = "section"
USER_NODE = "userSettings"
SETTING_NODE = "setting"
VALUE_NODE = "value"

USER_GROUP_TYPE = "System.Configuration.UserSettingsGroup"
CLIENT_SECTION_TYPE = "System.Configuration.ClientSettingsSection"

# String list fragment shape
STRING_LIST_ROOT = "ArrayOfString"
STRING_LIST_ITEM = "string"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
XSD_NS = "http://www.w3.org/2001/XMLSchema"

# Indentation used when the document is written back to disk
INDENT = "    "


def env_flag(name: str) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return False
    return raw.strip().lower() in ("1", "true", "yes", "on")


def env_home() -> str | None:
    raw = (os.environ.get(ENV_HOME) or "").strip()
    return raw or None
