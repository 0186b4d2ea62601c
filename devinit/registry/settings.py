"""Process-wide settings stored in a single row."""

import logging

from devinit.errors import UnknownOptionError
from devinit.lib import store
from devinit.lib.store import from_row
from devinit.registry.models import Settings

logger = logging.getLogger(__name__)

FLAGS = ("use_session_wrapper",)

# Older manifests and docs call the session wrapper by its command name.
_FLAG_ALIASES = {"uwsm": "use_session_wrapper"}

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def canonical_flag(name: str) -> str:
    flag = _FLAG_ALIASES.get(name, name)
    if flag not in FLAGS:
        raise UnknownOptionError(f"Unknown option: {name}")
    return flag


def parse_bool(text: str) -> bool:
    value = text.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"Expected true or false, got '{text}'")


def get() -> Settings:
    """Return the settings row, or defaults if it is missing."""
    with store.ensure() as conn:
        row = conn.execute("SELECT use_session_wrapper FROM settings WHERE id = 1").fetchone()
    if row is None:
        logger.warning("Settings row missing; using defaults")
        return Settings()
    return from_row(row, Settings)


def set_flag(name: str, value: bool | None = None) -> Settings:
    """Set a flag, or toggle it when value is None. Returns the new settings."""
    flag = canonical_flag(name)
    with store.transaction() as conn:
        conn.execute("INSERT OR IGNORE INTO settings (id) VALUES (1)")
        if value is None:
            conn.execute(f"UPDATE settings SET {flag} = 1 - {flag} WHERE id = 1")
        else:
            conn.execute(f"UPDATE settings SET {flag} = ? WHERE id = 1", (int(value),))
    current = get()
    logger.info(f"Set {flag} = {getattr(current, flag)}")
    return current
