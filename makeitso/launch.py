# makeitso/launch.py
from __future__ import annotations

import logging
import os
import subprocess
import threading
from typing import Callable, List, Optional, Tuple

from .backup import BackupEngine, BackupError
from .commandline import build
from .scriptgen import artifact_paths
from .utils import ensure_dir, ensure_file, is_macos

log = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Small helpers
# ──────────────────────────────────────────────────────────────────────────────

def spawn(executable: str, args: List[str], cwd: Optional[str] = None,
          stdout=None, stderr=None) -> subprocess.Popen:
    return subprocess.Popen([executable] + list(args), cwd=cwd, stdout=stdout, stderr=stderr)


def _drain(stream, log_path: str) -> None:
    """Copy the child's combined output into the session log until EOF."""
    read = getattr(stream, "read1", stream.read)
    try:
        with open(log_path, "ab") as fh:
            for chunk in iter(lambda: read(4096), b""):
                fh.write(chunk)
                fh.flush()
    except (OSError, ValueError) as e:
        log.warning("Session log stopped: %s", e)
    finally:
        try:
            stream.close()
        except Exception:
            pass


def _spawn_and_watch(
    argv: List[str],
    log_path: str,
    on_exit: Optional[Callable[[Optional[int]], None]] = None,
) -> Tuple[bool, str]:
    """
    Start the engine with stdout+stderr piped into ``log_path`` and call
    ``on_exit(returncode)`` once, from a background thread, when it ends.
    """
    try:
        ensure_file(log_path)
        p = spawn(argv[0], argv[1:], stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    except Exception as e:
        return False, str(e)

    out = getattr(p, "stdout", None)
    drainer = None
    if out is not None:
        drainer = threading.Thread(target=_drain, args=(out, log_path), daemon=True)
        drainer.start()

    if hasattr(p, "wait"):
        def _wait():
            code = None
            try:
                code = p.wait()
            finally:
                if drainer is not None:
                    drainer.join()
                if on_exit is not None:
                    try:
                        on_exit(code)
                    except Exception:
                        log.exception("Post-launch hook failed")

        threading.Thread(target=_wait, daemon=True).start()

    return True, "Launched."

# ──────────────────────────────────────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────────────────────────────────────

def backup_after_exit(store, profile_id: str) -> Callable[[Optional[int]], None]:
    """Exit hook that runs the profile's backup on the store's owner lock."""
    def hook(_code: Optional[int]) -> None:
        def work(s):
            p = s.get(profile_id)
            if p is None:
                return
            try:
                BackupEngine(s.locations).backup_now(p)
            except BackupError as e:
                s.message = f"Backup failed: {e}"
                log.error("Post-launch backup failed: %s", e)
        store.run_exclusive(work)
    return hook


def run_now(store, profile_id: str, *,
            on_exit: Optional[Callable[[Optional[int]], None]] = None) -> Tuple[bool, str]:
    """
    Launch the engine directly (no shell) for one profile.

    The preview is refreshed first; a non-zero exit status is not an error.
    ``on_exit`` runs after the post-launch backup, if any.
    """
    p = store.get(profile_id)
    if p is None:
        return False, "No such profile."
    locations = store.locations

    store.regenerate_preview(p.id)
    cmd = build(p, locations)
    try:
        ensure_dir(locations.save_dir(p.save_folder_name))
    except OSError as e:
        return False, str(e)

    hook = on_exit
    if p.backup_after_launch:
        backup = backup_after_exit(store, p.id)
        def hook(code, _then=on_exit):
            backup(code)
            if _then is not None:
                _then(code)
    ok, msg = _spawn_and_watch(cmd.argv, locations.logs_file, on_exit=hook)
    if ok:
        log.info("Launched %s for profile %r", cmd.executable, p.name)
    else:
        log.error("Launch failed for profile %r: %s", p.name, msg)
    return ok, msg


def engage(store, profile_id: str) -> Tuple[bool, str]:
    """Prefer a built bundle, then a built script, else launch directly."""
    p = store.get(profile_id)
    if p is None:
        return False, "No such profile."
    store.select(p.id)
    bundle, script = artifact_paths(p, store.locations.scripts_root)
    try:
        if bundle.exists() and is_macos():
            subprocess.Popen(["open", str(bundle)])
            return True, "Opened built app."
        if script.exists():
            subprocess.Popen(["/usr/bin/env", "bash", str(script)], cwd=str(script.parent))
            return True, "Started built script."
    except Exception as e:
        return False, str(e)
    return run_now(store, p.id)


def session_log_tail(path: str, max_bytes: int = 16_384) -> str:
    if not os.path.exists(path):
        return ""
    with open(path, "rb") as f:
        f.seek(0, os.SEEK_END)
        size = f.tell()
        f.seek(max(0, size - max_bytes))
        return f.read().decode("utf-8", errors="replace")
