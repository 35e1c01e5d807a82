# portable_settings/utils/logger.py

import logging
import sys
from pathlib import Path
from platformdirs import user_log_dir

from portable_settings.config import APP_NAME, APP_AUTHOR, ENV_DEBUG, env_flag

def setup_logger():
    logger = logging.getLogger(APP_NAME)
    logger.propagate = False

    # Default: only problems, on stderr, so a failed save is still visible
    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
               for h in logger.handlers):
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(logging.WARNING)
        sh.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        logger.addHandler(sh)

    if not env_flag(ENV_DEBUG):
        logger.setLevel(logging.WARNING)
        return logger

    # Debug mode: everything from INFO up also goes to the user log folder
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        try:
            log_dir = Path(user_log_dir(appname=APP_NAME, appauthor=APP_AUTHOR))
            log_dir.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_dir / "settings.debug.log", encoding="utf-8")
        except OSError as e:
            logger.warning("Debug log file unavailable: %s", e)
            return logger
        fh.setLevel(logging.INFO)
        fh.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        logger.addHandler(fh)
    return logger

logger = setup_logger()
