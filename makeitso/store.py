from __future__ import annotations

import logging
import threading
from functools import wraps
from typing import Callable, Iterable, List, Optional, Set, TypeVar

from .commandline import COMMAND_LINE_FIELDS, on_profile_field_changed
from .models import LOCKED_FIELDS, ModEntry, Profile, StoreSnapshot, new_id
from .portable import next_unique_paren_name
from .settings import ConfigSaveError, load_snapshot, save_snapshot
from .utils import Locations

log = logging.getLogger(__name__)

T = TypeVar("T")


def _exclusive(fn):
    @wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return fn(self, *args, **kwargs)
    return wrapper


class ProfileStore:
    """Ordered profiles plus selection; every mutation is saved before it returns.

    One logical owner: methods run under a re-entrant lock, and background
    work (process exit hooks) goes through :meth:`run_exclusive`.
    """

    def __init__(self, locations: Locations, config_path: Optional[str] = None):
        self.locations = locations
        self.config_path = config_path or locations.config_file
        self.profiles: List[Profile] = []
        self.selected_id: Optional[str] = None
        self.message = ""
        self._last_deleted: Optional[Profile] = None
        self._lock = threading.RLock()

    # --- persistence ---

    @_exclusive
    def load(self) -> None:
        snapshot = load_snapshot(self.config_path)
        self.profiles = snapshot.profiles
        self.selected_id = snapshot.selected_id
        self._fix_selection()

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(profiles=list(self.profiles), selected_id=self.selected_id)

    @_exclusive
    def save(self) -> bool:
        try:
            save_snapshot(self.config_path, self.snapshot())
        except ConfigSaveError as e:
            self.message = f"Save error: {e}"
            log.error("Could not save %s: %s", self.config_path, e)
            return False
        return True

    def run_exclusive(self, fn: Callable[["ProfileStore"], T]) -> T:
        with self._lock:
            return fn(self)

    # --- lookup / selection ---

    def index_of(self, pid: Optional[str]) -> Optional[int]:
        for i, p in enumerate(self.profiles):
            if p.id == pid:
                return i
        return None

    def get(self, pid: Optional[str]) -> Optional[Profile]:
        i = self.index_of(pid)
        return self.profiles[i] if i is not None else None

    @property
    def current(self) -> Optional[Profile]:
        return self.get(self.selected_id) or (self.profiles[0] if self.profiles else None)

    def pinned(self) -> List[Profile]:
        return [p for p in self.profiles if p.pinned_to_quick_launch]

    @_exclusive
    def select(self, pid: str) -> None:
        if self.index_of(pid) is not None:
            self.selected_id = pid

    def _fix_selection(self) -> None:
        if self.index_of(self.selected_id) is None:
            self.selected_id = self.profiles[0].id if self.profiles else None

    def unique_name(self, basename: str) -> str:
        names = {p.name for p in self.profiles}
        n = 1
        candidate = basename
        while candidate in names:
            n += 1
            candidate = f"{basename} {n}"
        return candidate

    # --- structure ---

    @_exclusive
    def add(self) -> Profile:
        p = Profile(name=self.unique_name("Profile"))
        p.backup_dest_path = self.locations.default_backup_root
        on_profile_field_changed(p, self.locations)
        self.profiles.append(p)
        self.selected_id = p.id
        self.save()
        return p

    @_exclusive
    def duplicate(self, pid: str) -> Optional[Profile]:
        src = self.get(pid)
        if src is None:
            return None
        clone = src.copy(
            id=new_id(),
            locked=False,
            name=next_unique_paren_name(src.name, [p.name for p in self.profiles]),
        )
        self.profiles.append(clone)
        self.selected_id = clone.id
        self.save()
        return clone

    @_exclusive
    def delete(self, pid: str) -> List[str]:
        return self.delete_many([pid])

    @_exclusive
    def delete_many(self, ids: Iterable[str]) -> List[str]:
        """Remove unlocked profiles; return the names of locked ones left alone."""
        wanted = set(ids)
        skipped: List[str] = []
        removed = 0
        for i in reversed(range(len(self.profiles))):
            p = self.profiles[i]
            if p.id not in wanted:
                continue
            if p.locked:
                skipped.append(p.name)
                continue
            self._last_deleted = p
            del self.profiles[i]
            removed += 1
        skipped.reverse()
        if removed:
            self.selected_id = self.profiles[0].id if self.profiles else None
            self.save()
        return skipped

    @_exclusive
    def delete_selection(self, selection: Set[str], active_id: Optional[str] = None) -> List[str]:
        if selection:
            return self.delete_many(selection)
        target = active_id or self.selected_id
        if target is None or self.index_of(target) is None:
            return []
        return self.delete_many([target])

    @_exclusive
    def undo_delete(self) -> Optional[Profile]:
        p = self._last_deleted
        if p is None:
            return None
        self.profiles.append(p)
        self.selected_id = p.id
        self._last_deleted = None
        self.save()
        return p

    @property
    def can_undo(self) -> bool:
        return self._last_deleted is not None

    @_exclusive
    def move_up(self, pid: str) -> bool:
        i = self.index_of(pid)
        if i is None or i == 0 or self.profiles[i].locked:
            return False
        self.profiles[i - 1], self.profiles[i] = self.profiles[i], self.profiles[i - 1]
        self.save()
        return True

    @_exclusive
    def move_down(self, pid: str) -> bool:
        i = self.index_of(pid)
        if i is None or i >= len(self.profiles) - 1 or self.profiles[i].locked:
            return False
        self.profiles[i + 1], self.profiles[i] = self.profiles[i], self.profiles[i + 1]
        self.save()
        return True

    @_exclusive
    def reorder(self, from_indices: Iterable[int], to_index: int) -> bool:
        """List-style move: ``to_index`` counts positions before removal."""
        picked = sorted({i for i in from_indices if 0 <= i < len(self.profiles)})
        if not picked or any(self.profiles[i].locked for i in picked):
            return False
        to_index = max(0, min(to_index, len(self.profiles)))
        moving = [self.profiles[i] for i in picked]
        rest = [p for i, p in enumerate(self.profiles) if i not in picked]
        at = to_index - sum(1 for i in picked if i < to_index)
        self.profiles = rest[:at] + moving + rest[at:]
        self.save()
        return True

    @_exclusive
    def set_locked(self, ids: Iterable[str], value: bool) -> None:
        wanted = set(ids)
        for p in self.profiles:
            if p.id in wanted:
                p.locked = value
        self.save()

    @_exclusive
    def toggle_lock(self, pid: str) -> None:
        p = self.get(pid)
        if p is not None:
            p.locked = not p.locked
            self.save()

    @_exclusive
    def import_profiles(self, profiles: Iterable[Profile]) -> None:
        self.profiles.extend(profiles)
        self._fix_selection()
        self.save()

    # --- field edits ---

    @_exclusive
    def rename(self, pid: str, name: str) -> bool:
        p = self.get(pid)
        name = name.strip()
        if p is None or not name or name == p.name:
            return False
        p.name = name
        self.save()
        return True

    @_exclusive
    def update(self, pid: str, **fields) -> bool:
        p = self.get(pid)
        if p is None:
            return False
        changed = set()
        for attr, value in fields.items():
            if not hasattr(p, attr) or attr in ("id", "locked"):
                raise AttributeError(attr)
            if p.locked and attr in LOCKED_FIELDS:
                continue
            if getattr(p, attr) != value:
                setattr(p, attr, value)
                changed.add(attr)
        if not changed:
            return False
        if changed & COMMAND_LINE_FIELDS:
            on_profile_field_changed(p, self.locations)
        self.save()
        return True

    @_exclusive
    def regenerate_preview(self, pid: str) -> Optional[str]:
        p = self.get(pid)
        if p is None:
            return None
        update = on_profile_field_changed(p, self.locations)
        if update.must_persist:
            self.save()
        return update.preview

    def _edit_mods(self, pid: str, edit: Callable[[List[ModEntry]], bool]) -> bool:
        p = self.get(pid)
        if p is None or p.locked:
            return False
        if not edit(p.mods):
            return False
        on_profile_field_changed(p, self.locations)
        self.save()
        return True

    @_exclusive
    def add_mods(self, pid: str, paths: Iterable[str]) -> bool:
        def edit(mods: List[ModEntry]) -> bool:
            known = {m.path for m in mods}
            added = False
            for path in paths:
                if path and path not in known:
                    mods.append(ModEntry(path=path))
                    known.add(path)
                    added = True
            return added
        return self._edit_mods(pid, edit)

    @_exclusive
    def remove_mod(self, pid: str, mod_id: str) -> bool:
        def edit(mods: List[ModEntry]) -> bool:
            before = len(mods)
            mods[:] = [m for m in mods if m.id != mod_id]
            return len(mods) != before
        return self._edit_mods(pid, edit)

    @_exclusive
    def move_mod(self, pid: str, mod_id: str, delta: int) -> bool:
        def edit(mods: List[ModEntry]) -> bool:
            i = next((n for n, m in enumerate(mods) if m.id == mod_id), None)
            if i is None or not 0 <= i + delta < len(mods):
                return False
            mods[i], mods[i + delta] = mods[i + delta], mods[i]
            return True
        return self._edit_mods(pid, edit)

    @_exclusive
    def set_mod_enabled(self, pid: str, mod_id: str, enabled: bool) -> bool:
        def edit(mods: List[ModEntry]) -> bool:
            for m in mods:
                if m.id == mod_id and m.enabled != enabled:
                    m.enabled = enabled
                    return True
            return False
        return self._edit_mods(pid, edit)
