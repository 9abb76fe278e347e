from __future__ import annotations

import logging
import os
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .models import Profile
from .utils import Locations, clamp_retention, sanitize_name, timestamp

log = logging.getLogger(__name__)

BACKUP_MARK = "_Backup_"
ARCHIVE_SUFFIX = ".zip"


class BackupError(OSError):
    pass


@dataclass
class BackupResult:
    dest_root: Path
    work_dir: Path
    archive: Optional[Path] = None
    pruned: List[Path] = field(default_factory=list)

    @property
    def location(self) -> Path:
        """What survived: the archive when compression worked, else the folder."""
        return self.archive or self.work_dir


def backup_name(save_folder_name: str, stamp: str) -> str:
    return f"{sanitize_name(save_folder_name)}{BACKUP_MARK}{stamp}"


def _mtime(p: Path) -> float:
    try:
        return p.stat().st_mtime
    except OSError:
        return float("-inf")


def _remove(p: Path) -> None:
    if p.is_dir() and not p.is_symlink():
        shutil.rmtree(p)
    else:
        p.unlink()


def prune_by_count(root: Path, keep: int) -> List[Path]:
    """Delete every ``*_Backup_*`` entry under ``root`` past the ``keep`` newest."""
    try:
        entries = [p for p in Path(root).iterdir() if BACKUP_MARK in p.name]
    except OSError:
        return []
    entries.sort(key=_mtime, reverse=True)
    removed: List[Path] = []
    for old in entries[keep:]:
        try:
            _remove(old)
            removed.append(old)
        except OSError as e:
            log.warning("Could not prune %s: %s", old, e)
    return removed


class BackupEngine:
    def __init__(self, locations: Locations):
        self.locations = locations

    def resolve_destination(self, profile: Profile) -> Path:
        trimmed = profile.backup_dest_path.strip()
        root = Path(trimmed or self.locations.default_backup_root)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(f"Cannot create backup folder {root}: {e}") from e
        return root

    def sources(self, profile: Profile) -> List[str]:
        """Single files to copy, in copy order."""
        picked = []
        if profile.backup_launcher_ini:
            picked.append(self.locations.config_file)
        if profile.backup_engine_ini:
            picked.append(self.locations.engine_ini)
        if profile.backup_autoexec:
            picked.append(self.locations.autoexec_cfg)
        return picked

    def backup_now(self, profile: Profile, now: Optional[float] = None) -> BackupResult:
        dest_root = self.resolve_destination(profile)
        name = backup_name(profile.save_folder_name, timestamp(now))
        safe_mod = sanitize_name(profile.save_folder_name)
        work = dest_root / name
        try:
            work.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(f"Cannot create {work}: {e}") from e

        for src in self.sources(profile):
            if not os.path.isfile(src):
                continue
            try:
                shutil.copy2(src, work)
            except OSError as e:
                log.warning("Skipping %s: %s", src, e)

        if profile.backup_saves:
            save_dir = self.locations.save_dir(profile.save_folder_name)
            if os.path.isdir(save_dir):
                try:
                    shutil.copytree(save_dir, work / f"Savedir_{safe_mod}", dirs_exist_ok=True)
                except (OSError, shutil.Error) as e:
                    log.warning("Save folder copy incomplete: %s", e)

        result = BackupResult(dest_root=dest_root, work_dir=work)
        if profile.compress_backups:
            result.archive = self._archive(work)

        result.pruned = prune_by_count(dest_root, clamp_retention(profile.retention_count))
        log.info("Backup written to %s", result.location)
        return result

    def _archive(self, work: Path) -> Optional[Path]:
        made = write_zip(work)
        if made is None:
            return None
        try:
            shutil.rmtree(work)
        except OSError as e:
            log.warning("Could not remove %s after archiving: %s", work, e)
        return made


def write_zip(work: Path) -> Optional[Path]:
    """Zip ``work`` next to itself as ``<name>.zip``; entries start with ``<name>/``.

    Paths are absolute, so the process working directory is never touched.
    A partial archive is removed on failure and ``None`` returned.
    """
    archive = work.parent / (work.name + ARCHIVE_SUFFIX)
    try:
        with zipfile.ZipFile(archive, "w", zipfile.ZIP_DEFLATED) as zf:
            zf.write(work, work.name)
            for dirpath, dirnames, filenames in os.walk(work):
                dirnames.sort()
                for name in dirnames + sorted(filenames):
                    full = Path(dirpath) / name
                    zf.write(full, str(full.relative_to(work.parent)))
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        log.warning("Archive failed, keeping %s: %s", work, e)
        if archive.is_file():
            archive.unlink()
        return None
    return archive
