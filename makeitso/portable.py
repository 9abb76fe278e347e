"""
Profile sharing.

Exports are written with home-relative (``~``) paths and a scrubbed command
line so a bundle can move between machines; imports expand ``~``, move
another user's home paths onto the local one, and fall back to standard
locations for files that are not present here.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Callable, Iterable, List, Tuple

from .models import DEFAULT_ENGINE_PATH, ModEntry, Profile, new_id
from .utils import USER_ROOTS, Locations, path_abbrev, path_expand, scrub_cli_for_export

log = logging.getLogger(__name__)

INVALID_EXPORT = "File is not a valid Make It So export."


class ImportFormatError(ValueError):
    pass


# --- export ---

def export_view(profile: Profile, home: str) -> Profile:
    q = profile.copy()
    q.engine_path = path_abbrev(profile.engine_path, home)
    q.data_file_path = path_abbrev(profile.data_file_path, home)
    q.backup_dest_path = path_abbrev(profile.backup_dest_path, home)
    q.mods = [ModEntry(path=path_abbrev(m.path, home), enabled=m.enabled, id=m.id) for m in profile.mods]
    q.edited_command_line = scrub_cli_for_export(profile.edited_command_line, home)
    return q


def dump_export(profiles: Iterable[Profile], home: str) -> str:
    bundle = {"profiles": [export_view(p, home).to_dict() for p in profiles]}
    return json.dumps(bundle, indent=2, sort_keys=True, ensure_ascii=False)


def export_filename(exported: int, total: int, current_name: str, from_selection: bool = False) -> str:
    if from_selection:
        return "MakeItSo-Profiles-Selected.json"
    if exported == total:
        return "MakeItSo-Profiles-All.json"
    return f"MakeItSo-Profile-{current_name}.json"


# --- import ---

def parse_import(text: str) -> List[Profile]:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ImportFormatError(INVALID_EXPORT) from e
    if isinstance(data, dict) and isinstance(data.get("profiles"), list):
        items = data["profiles"]
    elif isinstance(data, list):
        items = data
    else:
        raise ImportFormatError(INVALID_EXPORT)
    if not all(isinstance(item, dict) for item in items):
        raise ImportFormatError(INVALID_EXPORT)
    if any(not isinstance(item.get("mods", []), list) for item in items):
        raise ImportFormatError(INVALID_EXPORT)
    return [Profile.from_dict(item) for item in items]


def localize_home(path: str, home: str) -> str:
    """Expand ``~`` and move ``/Users/<someone>/...`` onto ``home``."""
    v = path_expand(path, home)
    if v == home or v.startswith(home + "/"):
        return v
    for root in USER_ROOTS:
        if v.startswith(root + "/"):
            comps = v.split("/")             # ["", "Users", "<name>", ...]
            tail = "/".join(c for c in comps[3:] if c)
            return os.path.join(home, tail) if tail else home
    return v


def normalize_for_import(profile: Profile, locations: Locations,
                         exists: Callable[[str], bool] = os.path.exists) -> Tuple[Profile, bool]:
    home = locations.home
    q = profile.copy()

    q.engine_path = localize_home(q.engine_path, home)
    q.data_file_path = localize_home(q.data_file_path, home)
    q.backup_dest_path = localize_home(q.backup_dest_path, home)
    q.mods = [ModEntry(path=localize_home(m.path, home), enabled=m.enabled, id=m.id) for m in q.mods]

    # non-blocking fallbacks for files missing on this machine
    if q.engine_path and not exists(q.engine_path):
        q.engine_path = DEFAULT_ENGINE_PATH
    if q.data_file_path and not exists(q.data_file_path):
        fname = os.path.basename(q.data_file_path)
        if fname:
            q.data_file_path = os.path.join(locations.support_dir, fname)

    changed = (
        q.engine_path != profile.engine_path
        or q.data_file_path != profile.data_file_path
        or q.backup_dest_path != profile.backup_dest_path
        or [m.path for m in q.mods] != [m.path for m in profile.mods]
    )
    return q, changed


def import_normalize(profiles: Iterable[Profile], locations: Locations,
                     exists: Callable[[str], bool] = os.path.exists) -> Tuple[List[Profile], bool]:
    out: List[Profile] = []
    any_adjusted = False
    for p in profiles:
        fixed, adjusted = normalize_for_import(p, locations, exists)
        out.append(fixed)
        any_adjusted = any_adjusted or adjusted
    return out, any_adjusted


def next_unique_paren_name(base: str, names: Iterable[str]) -> str:
    taken = set(names)
    if base not in taken:
        return base
    n = 1
    while f"{base} ({n})" in taken:
        n += 1
    return f"{base} ({n})"


def rewrite_for_import(profiles: Iterable[Profile], existing_names: Iterable[str]) -> List[Profile]:
    """Fresh ids and de-duplicated names; later entries see earlier choices."""
    names = list(existing_names)
    result: List[Profile] = []
    for p in profiles:
        name = next_unique_paren_name(p.name, names)
        names.append(name)
        result.append(p.copy(id=new_id(), name=name))
    return result


def import_into(store, text: str, exists: Callable[[str], bool] = os.path.exists) -> Tuple[int, bool]:
    """Parse, normalize and append profiles to ``store``; persists once."""
    incoming = parse_import(text)
    if not incoming:
        return 0, False
    normalized, adjusted = import_normalize(incoming, store.locations, exists)
    rewritten = rewrite_for_import(normalized, [p.name for p in store.profiles])
    store.import_profiles(rewritten)
    log.info("Imported %d profile(s)%s", len(rewritten), " with adjusted paths" if adjusted else "")
    return len(rewritten), adjusted
