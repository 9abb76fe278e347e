import os
import uuid
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

from .utils import get_home

DEFAULT_ENGINE_PATH = "/Applications/GZDoom.app/Contents/MacOS/gzdoom"


def new_id() -> str:
    return str(uuid.uuid4()).upper()


def default_data_file() -> str:
    return os.path.join(str(get_home()), "Library/Application Support/gzdoom/DOOM2.WAD")


@dataclass
class ModEntry:
    path: str
    enabled: bool = True
    id: str = field(default_factory=new_id, compare=False)  # not persisted in the INI


@dataclass
class Profile:
    id: str = field(default_factory=new_id)
    name: str = "New Profile"

    # launch
    engine_path: str = DEFAULT_ENGINE_PATH
    data_file_path: str = field(default_factory=default_data_file)
    save_folder_name: str = "base"              # ~/Documents/GZDoom/<save_folder_name>
    mods: List[ModEntry] = field(default_factory=list)
    extra_arguments: str = ""
    edited_command_line: str = ""

    # backups
    backup_dest_path: str = ""                  # "" = default backup root
    backup_engine_ini: bool = True
    backup_launcher_ini: bool = True
    backup_autoexec: bool = True
    backup_saves: bool = True
    backup_after_launch: bool = False
    retention_count: int = 10
    compress_backups: bool = True

    # per-profile UI state
    show_filenames_only: bool = False
    allow_cli_edit_while_private: bool = False
    pinned_to_quick_launch: bool = False

    locked: bool = False

    def copy(self, **changes) -> "Profile":
        changes.setdefault("mods", [replace(m) for m in self.mods])
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        for attr, key in FIELD_KEYS.items():
            data[key] = getattr(self, attr)
        data["mods"] = [{"id": m.id, "name": m.path, "enabled": m.enabled} for m in self.mods]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        p = cls()
        pid = data.get("id")
        if isinstance(pid, str) and pid.strip():
            p.id = pid.strip()
        for attr, key in FIELD_KEYS.items():
            if key not in data:
                continue
            value = data[key]
            kind = FIELD_TYPES[attr]
            if kind is bool and isinstance(value, bool):
                setattr(p, attr, value)
            elif kind is int and isinstance(value, int) and not isinstance(value, bool):
                setattr(p, attr, value)
            elif kind is str and isinstance(value, str):
                setattr(p, attr, value)
        mods: List[ModEntry] = []
        raw_mods = data.get("mods")
        for item in raw_mods if isinstance(raw_mods, list) else []:
            if not isinstance(item, dict):
                continue
            path = item.get("name") or item.get("path") or ""
            if not isinstance(path, str) or not path:
                continue
            enabled = item.get("enabled", True)
            mid = item.get("id")
            m = ModEntry(path=path, enabled=enabled if isinstance(enabled, bool) else True)
            if isinstance(mid, str) and mid:
                m.id = mid
            mods.append(m)
        p.mods = mods
        return p


@dataclass
class StoreSnapshot:
    profiles: List[Profile] = field(default_factory=list)
    selected_id: Optional[str] = None


# Python attribute -> key written to makeitso.ini and JSON bundles
FIELD_KEYS: Dict[str, str] = {
    "name": "name",
    "engine_path": "gzdoomPath",
    "data_file_path": "iwadFullPath",
    "save_folder_name": "modFolder",
    "extra_arguments": "extraArgs",
    "edited_command_line": "editedCLI",
    "backup_dest_path": "backupDestPath",
    "backup_engine_ini": "backupGZIni",
    "backup_launcher_ini": "backupMakeItSo",
    "backup_autoexec": "backupAutoExec",
    "backup_saves": "backupModSaves",
    "backup_after_launch": "backupAfterRun",
    "retention_count": "backupKeepCount",
    "compress_backups": "backupZip",
    "show_filenames_only": "uiShowFilenamesOnly",
    "allow_cli_edit_while_private": "uiAllowPrivacyCLIEdit",
    "pinned_to_quick_launch": "showInDockMenu",
    "locked": "locked",
}

FIELD_TYPES: Dict[str, type] = {f.name: f.type for f in fields(Profile) if f.name in FIELD_KEYS}

# Fields a locked profile refuses to change.
LOCKED_FIELDS = frozenset({
    "engine_path",
    "data_file_path",
    "save_folder_name",
    "mods",
    "extra_arguments",
    "edited_command_line",
    "backup_dest_path",
    "backup_engine_ini",
    "backup_launcher_ini",
    "backup_autoexec",
    "backup_saves",
    "backup_after_launch",
    "retention_count",
    "compress_backups",
})
