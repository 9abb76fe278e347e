import os
import re
import sys
import time
from pathlib import Path
from typing import Optional, Union

RETENTION_MIN = 1
RETENTION_MAX = 30

# Roots under which per-user home directories live.
USER_ROOTS = ("/Users", "/home")
_FOREIGN_HOME_RE = re.compile(r"/(?:Users|home)/[^/]+")
_UNSAFE_RUN_RE = re.compile(r"[^A-Za-z0-9._-]+")


def get_home() -> Path:
    """Allow overriding home for tests via MAKEITSO_HOME."""
    env_home = os.environ.get("MAKEITSO_HOME")
    return Path(env_home).expanduser() if env_home else Path.home()


def is_macos() -> bool:
    return sys.platform == "darwin"


class Locations:
    """Fixed per-user locations the launcher reads and writes."""

    def __init__(self, home: Union[str, Path, None] = None):
        self.home = str(home) if home is not None else str(get_home())

    def _under_home(self, rel: str) -> str:
        return os.path.join(self.home, rel)

    @property
    def support_dir(self) -> str:
        return self._under_home("Library/Application Support/gzdoom")

    @property
    def docs_save_root(self) -> str:
        return self._under_home("Documents/GZDoom")

    @property
    def logs_file(self) -> str:
        return self._under_home("Library/Logs/MakeItSo/session.log")

    @property
    def log_dir(self) -> str:
        return os.path.dirname(self.logs_file)

    @property
    def config_file(self) -> str:
        return self._under_home("Library/Preferences/makeitso.ini")

    @property
    def engine_ini(self) -> str:
        return self._under_home("Library/Preferences/gzdoom.ini")

    @property
    def autoexec_cfg(self) -> str:
        return os.path.join(self.docs_save_root, "autoexec.cfg")

    @property
    def default_backup_root(self) -> str:
        return self._under_home("Library/Mobile Documents/com~apple~CloudDocs/MakeItSo-Backups")

    @property
    def scripts_root(self) -> str:
        return self._under_home("Scripts/MakeItSo")

    def save_dir(self, save_folder_name: str) -> str:
        return os.path.join(self.docs_save_root, save_folder_name)


def ensure_dir(path: Union[str, Path]) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def ensure_file(path: Union[str, Path]) -> Path:
    p = Path(path)
    ensure_dir(p.parent)
    if not p.exists():
        p.touch()
    return p


# --- path strings ---

def path_abbrev(p: str, home: str) -> str:
    """Abbreviate an absolute path under ``home`` to ``~``."""
    if p == home:
        return "~"
    if p.startswith(home + "/"):
        return "~" + p[len(home):]
    return p


def path_expand(p: str, home: str) -> str:
    if p == "~":
        return home
    if p.startswith("~/"):
        return os.path.join(home, p[2:])
    return p


def abbrev_deep(s: str, home: str) -> str:
    """Abbreviate every occurrence of ``home`` inside a larger string."""
    return s.replace(home + "/", "~/").replace(home, "~")


def expand_deep(s: str, home: str) -> str:
    """Undo :func:`abbrev_deep` for text shown with ``~`` in place of ``home``."""
    if s == "~":
        return home
    return s.replace("~/", home + "/").replace("~", home)


def scrub_cli_for_export(s: str, home: str) -> str:
    # current home first, then anybody else's
    return _FOREIGN_HOME_RE.sub("~", abbrev_deep(s, home))


def resolve_engine_binary(path: str) -> str:
    if path.endswith(".app"):
        return os.path.join(path, "Contents/MacOS/gzdoom")
    return path


def sanitize_name(value: str) -> str:
    return _UNSAFE_RUN_RE.sub("_", value)


def timestamp(now: Optional[float] = None) -> str:
    return time.strftime("%Y-%m-%d_%H-%M-%S", time.localtime(now))


def clamp_retention(count: int) -> int:
    return max(RETENTION_MIN, min(RETENTION_MAX, count))
