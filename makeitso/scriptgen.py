"""
Standalone launcher scripts.

A profile is frozen into a bash script that launches the engine with the same
argument vector as :func:`makeitso.commandline.build` and then runs the same
backup sequence as :class:`makeitso.backup.BackupEngine`. A tiny ``.app``
bundle wrapping the script makes it double-clickable.
"""
from __future__ import annotations

import logging
import os
import plistlib
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

from .commandline import split_cli
from .models import Profile
from .utils import Locations, clamp_retention, resolve_engine_binary, sanitize_name

log = logging.getLogger(__name__)

RUNNER_NAME = "MakeItSoRunner"
# Retention modes understood by the script; the app writes "count".
BACKUP_MODES = ("age", "count", "off")
PRUNE_DAYS = 30


class ArtifactError(OSError):
    pass


@dataclass
class BuiltArtifacts:
    script: Path
    bundle: Path


def bash_quote(s: str) -> str:
    """Double-quoted bash word that expands to exactly ``s``."""
    out = s.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$").replace("`", "\\`")
    return f'"{out}"'


def _home_relative(path: str, home: str) -> str:
    """``"$HOME/..."`` when ``path`` sits under ``home``, else a plain quoted word."""
    if path == home:
        return '"$HOME"'
    if path.startswith(home + "/"):
        return '"$HOME"' + bash_quote(path[len(home):])
    return bash_quote(path)


def _on(flag: bool) -> str:
    return "on" if flag else "off"


def script_data_file(raw: str) -> str:
    """IWAD_PATH value: absolute or ``~`` paths as-is, else re-rooted by filename."""
    if not raw:
        return '""'
    if raw.startswith("/") or raw.startswith("~"):
        return bash_quote(raw)
    return '"$HOME/Library/Application Support/gzdoom/"' + bash_quote(os.path.basename(raw))


def generate(profile: Profile, locations: Locations, backup_root: Union[str, Path]) -> str:
    bin_path = resolve_engine_binary(profile.engine_path)
    safe_mod = sanitize_name(profile.save_folder_name)
    keep = clamp_retention(profile.retention_count)
    mod_lines = "\n".join("  " + bash_quote(m.path) for m in profile.mods if m.enabled)
    extra = " ".join(bash_quote(t) for t in split_cli(profile.extra_arguments))
    home = locations.home

    lines: List[str] = [
        "#!/bin/bash",
        "",
        "# ==============================================================",
        "# GZDoom launcher script (generated by Make It So)",
        "# ==============================================================",
        "",
        "set -u",
        "",
        "# =======================",
        "# USER SETTINGS (from profile)",
        "# =======================",
        "",
        f"MOD={bash_quote(profile.save_folder_name)}",
        f"SAFE_MOD={bash_quote(safe_mod)}",
        f"IWAD_PATH={script_data_file(profile.data_file_path)}",
        "# Base folder for relative mod entries",
        'MOD_BASE="$HOME/Library/Application Support/gzdoom/$MOD"',
        "",
        "# Ordered list of mods to load.",
        "# - Entries starting with '/' or '~' are used as-is.",
        "# - Others are resolved under MOD_BASE.",
        "MOD_FILES=(",
        mod_lines,
        ")",
        "",
        "# Extra engine arguments, already split",
        f"EXTRA_ARGS=( {extra} )",
        "",
        "# Backup destination",
        f"BACKUP_BASE={_home_relative(str(backup_root), home)}",
        "",
        "# Pruning: age (older than PRUNE_DAYS), count (keep MAX_BACKUPS newest), off",
        'BACKUP_MODE="count"',
        f"PRUNE_DAYS={PRUNE_DAYS}",
        f"MAX_BACKUPS={keep}",
        "",
        f'ZIP_BACKUPS="{_on(profile.compress_backups)}"',
        f'ZIP_DELETE_RAW="{_on(profile.compress_backups)}"',
        "",
        "# Backup toggles",
        f'BACKUP_MAKEITSO="{_on(profile.backup_launcher_ini)}"',
        f'BACKUP_GZDOOM_INI="{_on(profile.backup_engine_ini)}"',
        f'BACKUP_AUTOEXEC="{_on(profile.backup_autoexec)}"',
        f'BACKUP_SAVEDIR="{_on(profile.backup_saves)}"',
        "",
        "# =======================",
        "# DERIVED PATHS",
        "# =======================",
        "",
        'SAVE_DIR="$HOME/Documents/GZDoom/$MOD"',
        'SRC_MAKEITSO="$HOME/Library/Preferences/makeitso.ini"',
        'SRC_INI="$HOME/Library/Preferences/gzdoom.ini"',
        'SRC_AUTOEXEC="$HOME/Documents/GZDoom/autoexec.cfg"',
        "",
        'mkdir -p "$SAVE_DIR"',
        "",
        "# =======================",
        "# MOD FILE ARGUMENTS",
        "# =======================",
        "FILE_ARGS=()",
        "for f in ${MOD_FILES[@]+\"${MOD_FILES[@]}\"}; do",
        '  [ -n "$f" ] || continue',
        '  if [[ "$f" == /* || "$f" == \\~* ]]; then',
        '    FILE_ARGS+=("${f/#\\~/$HOME}")',
        "  else",
        '    FILE_ARGS+=("$MOD_BASE/$f")',
        "  fi",
        "done",
        "",
        "# =======================",
        "# LAUNCH",
        "# =======================",
        f'CMD=({bash_quote(bin_path)} -savedir "$SAVE_DIR")',
        "",
        'if [ "${#FILE_ARGS[@]}" -gt 0 ]; then',
        '  CMD+=(-file "${FILE_ARGS[@]}")',
        "fi",
        "",
        'if [ -n "$IWAD_PATH" ]; then',
        '  CMD+=(-iwad "${IWAD_PATH/#\\~/$HOME}")',
        "fi",
        "",
        'if [ "${#EXTRA_ARGS[@]}" -gt 0 ]; then',
        '  CMD+=("${EXTRA_ARGS[@]}")',
        "fi",
        "",
        '"${CMD[@]}"',
        "",
        "# =======================",
        "# BACKUP",
        "# =======================",
        'STAMP=$(date +"%Y-%m-%d_%H-%M-%S")',
        'NAME="${SAFE_MOD}_Backup_${STAMP}"',
        'DEST="$BACKUP_BASE/$NAME"',
        'mkdir -p "$DEST" || exit 1',
        "",
        'if [ "$BACKUP_MAKEITSO" = "on" ] && [ -f "$SRC_MAKEITSO" ]; then',
        '  rsync -a "$SRC_MAKEITSO" "$DEST/"',
        "fi",
        'if [ "$BACKUP_GZDOOM_INI" = "on" ] && [ -f "$SRC_INI" ]; then',
        '  rsync -a "$SRC_INI" "$DEST/"',
        "fi",
        'if [ "$BACKUP_AUTOEXEC" = "on" ] && [ -f "$SRC_AUTOEXEC" ]; then',
        '  rsync -a "$SRC_AUTOEXEC" "$DEST/"',
        "fi",
        'if [ "$BACKUP_SAVEDIR" = "on" ] && [ -d "$SAVE_DIR" ]; then',
        '  mkdir -p "$DEST/Savedir_${SAFE_MOD}"',
        '  rsync -a "$SAVE_DIR/" "$DEST/Savedir_${SAFE_MOD}/"',
        "fi",
        "",
        'if [ "$ZIP_BACKUPS" = "on" ]; then',
        '  if (cd "$BACKUP_BASE" && zip -r -q "${NAME}.zip" "$NAME"); then',
        '    [ "$ZIP_DELETE_RAW" = "on" ] && rm -rf "$DEST"',
        "  fi",
        "fi",
        "",
        'case "$BACKUP_MODE" in',
        "  age)",
        "    find \"$BACKUP_BASE\" -maxdepth 1 -name '*_Backup_*' -mtime +\"$PRUNE_DAYS\" -exec rm -rf {} +",
        "    ;;",
        "  count)",
        "    COUNT=0",
        "    while IFS= read -r item; do",
        '      [ -e "$item" ] || continue',
        "      COUNT=$((COUNT+1))",
        '      if [ "$COUNT" -gt "$MAX_BACKUPS" ]; then',
        '        rm -rf "$item"',
        "      fi",
        "    done < <(ls -1dt \"$BACKUP_BASE\"/*_Backup_* 2>/dev/null)",
        "    ;;",
        "  off|none|disable) ;;",
        "  *) ;;",
        "esac",
        "",
        "exit 0",
        "",
    ]
    return "\n".join(lines)


# --- artifacts ---

def artifact_paths(profile: Profile, root: Union[str, Path]) -> Tuple[Path, Path]:
    """(bundle, script) paths for ``profile`` under ``root``."""
    safe = sanitize_name(profile.name)
    root = Path(root)
    return root / f"{safe}.app", root / f"{safe}.sh"


def _info_plist(profile: Profile) -> bytes:
    return plistlib.dumps({
        "CFBundleName": profile.name,
        "CFBundleIdentifier": f"com.makeitso.{sanitize_name(profile.name)}",
        "CFBundleVersion": "1.0",
        "CFBundleShortVersionString": "1.0",
        "CFBundlePackageType": "APPL",
        "CFBundleExecutable": RUNNER_NAME,
        "LSMinimumSystemVersion": "10.13",
    })


def build_artifacts(profile: Profile, target_root: Union[str, Path], locations: Locations,
                    backup_root: Union[str, Path]) -> BuiltArtifacts:
    bundle, script = artifact_paths(profile, target_root)

    # overwrite deterministically
    if script.exists() or script.is_symlink():
        script.unlink()
    if bundle.exists():
        shutil.rmtree(bundle)

    try:
        script.parent.mkdir(parents=True, exist_ok=True)
        script.write_text(generate(profile, locations, backup_root), encoding="utf-8")
        script.chmod(0o755)
    except OSError as e:
        raise ArtifactError(f"Failed to write script: {e}") from e

    contents = bundle / "Contents"
    runner = contents / "MacOS" / RUNNER_NAME
    try:
        runner.parent.mkdir(parents=True, exist_ok=True)
        (contents / "Info.plist").write_bytes(_info_plist(profile))
        runner.write_text(f"#!/bin/bash\n/usr/bin/env bash {bash_quote(str(script))}\n", encoding="utf-8")
        runner.chmod(0o755)
    except OSError as e:
        raise ArtifactError(f"Failed to build app bundle: {e}") from e

    log.info("Built %s and %s", script, bundle)
    return BuiltArtifacts(script=script, bundle=bundle)
