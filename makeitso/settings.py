"""
makeitso.ini persistence.

Line-oriented, section-keyed text in the same spirit as gzdoom.ini:

    [MakeItSo]
    selected=<profile id>

    [Profiles]
    order=<id>,<id>,...

    [Profile.<id>]
    name=...
    ...

    [Profile.<id>.Mods]
    count=N
    mod0.path=...
    mod0.enabled=true

Older releases stored the same data as one JSON object; such a file is
decoded once and rewritten in this format.
"""
from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .models import FIELD_KEYS, FIELD_TYPES, ModEntry, Profile, StoreSnapshot

log = logging.getLogger(__name__)

APP_SECTION = "MakeItSo"
ORDER_SECTION = "Profiles"
PROFILE_PREFIX = "Profile."
MODS_SUFFIX = ".Mods"

HEADER = [
    "; Make It So configuration (INI style, compatible look with gzdoom.ini)",
    "; Do not edit while the app is running.",
]

TRUE_WORDS = ("true", "1", "yes", "on")
FALSE_WORDS = ("false", "0", "no", "off")
COMMENT_PREFIXES = (";", "#", "//")

_INT_RE = re.compile(r"^[+-]?\d+$")
# multi-line free text; newlines are stored as the two characters \n
MULTILINE_FIELDS = ("extra_arguments", "edited_command_line")


class ConfigSaveError(OSError):
    pass


# --- low level ---

def parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    t = value.lower()
    if t in TRUE_WORDS:
        return True
    if t in FALSE_WORDS:
        return False
    return default


def parse_int(value: Optional[str], default: int) -> int:
    if value is None or not _INT_RE.match(value):
        return default
    return int(value)


def unquote(value: str) -> str:
    v = value
    if len(v) >= 2 and v.startswith('"') and v.endswith('"'):
        v = v[1:-1].replace('\\"', '"')
    return v.replace("\\n", "\n")


def escape(value: str) -> str:
    v = value.replace("\n", "\\n")
    if ";" in v or v.startswith('"') or v != v.strip(" \t"):
        v = '"' + v.replace('"', '\\"') + '"'
    return v


def parse_ini(text: str) -> Dict[str, Dict[str, str]]:
    """Sections in discovery order; keys before the first header go to ``""``."""
    sections: Dict[str, Dict[str, str]] = {}
    current = ""
    for raw in text.split("\n"):
        line = raw.strip(" \t\r")
        if not line or line.startswith(COMMENT_PREFIXES):
            continue
        if line.startswith("[") and line.endswith("]"):
            current = line[1:-1]
            sections.setdefault(current, {})
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        sections.setdefault(current, {})[key.strip(" \t")] = unquote(value.strip(" \t"))
    return sections


def _fmt_bool(value: bool) -> str:
    return "true" if value else "false"


# --- snapshot codec ---

def default_snapshot() -> StoreSnapshot:
    p = Profile()
    return StoreSnapshot(profiles=[p], selected_id=p.id)


def _finish(profiles: List[Profile], selected: Optional[str]) -> StoreSnapshot:
    if not profiles:
        return default_snapshot()
    ids = {p.id for p in profiles}
    return StoreSnapshot(profiles=profiles, selected_id=selected if selected in ids else profiles[0].id)


def _profile_from_sections(pid: str, base: Dict[str, str], mods: Optional[Dict[str, str]]) -> Profile:
    p = Profile(id=pid)
    for attr, key in FIELD_KEYS.items():
        raw = base.get(key)
        kind = FIELD_TYPES[attr]
        if kind is bool:
            setattr(p, attr, parse_bool(raw, getattr(p, attr)))
        elif kind is int:
            setattr(p, attr, parse_int(raw, getattr(p, attr)))
        elif raw is not None:
            setattr(p, attr, raw)
    if mods:
        count = parse_int(mods.get("count"), 0)
        for i in range(max(count, 0)):
            path = mods.get(f"mod{i}.path", "")
            if not path:
                continue
            p.mods.append(ModEntry(path=path, enabled=parse_bool(mods.get(f"mod{i}.enabled"), True)))
    return p


def _decode_ini(text: str) -> StoreSnapshot:
    ini = parse_ini(text)
    order_raw = ini.get(ORDER_SECTION, {}).get("order", "")
    ids = [t.strip() for t in order_raw.split(",") if t.strip()]
    if not ids:
        ids = [
            name[len(PROFILE_PREFIX):]
            for name in ini
            if name.startswith(PROFILE_PREFIX) and not name.endswith(MODS_SUFFIX)
        ]

    loaded: List[Profile] = []
    seen = set()
    for pid in ids:
        if not pid or pid in seen:
            continue
        base = ini.get(PROFILE_PREFIX + pid)
        if base is None:
            continue
        seen.add(pid)
        loaded.append(_profile_from_sections(pid, base, ini.get(PROFILE_PREFIX + pid + MODS_SUFFIX)))

    selected = ini.get(APP_SECTION, {}).get("selected") or None
    return _finish(loaded, selected)


def _decode_legacy(text: str) -> Optional[StoreSnapshot]:
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("profiles"), list):
        return None
    if not all(isinstance(item, dict) for item in data["profiles"]):
        return None
    profiles = [Profile.from_dict(item) for item in data["profiles"]]
    selected = data.get("selected")
    return _finish(profiles, selected if isinstance(selected, str) else None)


def decode_with_migration(text: Optional[str]) -> Tuple[StoreSnapshot, bool]:
    """Decode stored text; the flag says the legacy JSON branch was taken."""
    if not text:
        return default_snapshot(), False
    try:
        if text.lstrip().startswith("{"):
            legacy = _decode_legacy(text)
            if legacy is not None:
                return legacy, True
        return _decode_ini(text), False
    except Exception:
        log.exception("Unreadable configuration, using defaults")
        return default_snapshot(), False


def decode(text: Optional[str]) -> StoreSnapshot:
    return decode_with_migration(text)[0]


def encode(snapshot: StoreSnapshot) -> str:
    out: List[str] = list(HEADER)
    out.append("")

    out.append(f"[{APP_SECTION}]")
    if snapshot.selected_id:
        out.append(f"selected={snapshot.selected_id}")
    out.append("")

    out.append(f"[{ORDER_SECTION}]")
    out.append("order=" + ",".join(p.id for p in snapshot.profiles))
    out.append("")

    for p in snapshot.profiles:
        base = PROFILE_PREFIX + p.id
        out.append(f"[{base}]")
        for attr, key in FIELD_KEYS.items():
            value = getattr(p, attr)
            if isinstance(value, bool):
                out.append(f"{key}={_fmt_bool(value)}")
            elif isinstance(value, int):
                out.append(f"{key}={value}")
            else:
                out.append(f"{key}={escape(value)}")
        out.append("")

        out.append(f"[{base}{MODS_SUFFIX}]")
        out.append(f"count={len(p.mods)}")
        for i, m in enumerate(p.mods):
            out.append(f"mod{i}.path={escape(m.path)}")
            out.append(f"mod{i}.enabled={_fmt_bool(m.enabled)}")
        out.append("")

    return "\n".join(out)


# --- files ---

def save_snapshot(path: Union[str, Path], snapshot: StoreSnapshot) -> None:
    target = Path(path)
    text = encode(snapshot)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".makeitso-", dir=str(target.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, target)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
    except OSError as e:
        raise ConfigSaveError(str(e)) from e


def load_snapshot(path: Union[str, Path]) -> StoreSnapshot:
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8") if p.exists() else None
    except (OSError, UnicodeDecodeError):
        log.warning("Could not read %s, using defaults", p)
        raw = None
    snapshot, migrated = decode_with_migration(raw)
    if migrated:
        log.info("Migrating legacy JSON configuration at %s", p)
        try:
            save_snapshot(p, snapshot)
        except ConfigSaveError as e:
            log.error("Migration write failed: %s", e)
    return snapshot
