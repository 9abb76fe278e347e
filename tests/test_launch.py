import io
import os
import time

from makeitso import launch
from makeitso.models import ModEntry


def _wait_for(cond, timeout=5.0):
    end = time.time() + timeout
    while time.time() < end:
        if cond():
            return True
        time.sleep(0.01)
    return cond()


def test_run_now_spawns_built_argv(store, fake_popen):
    p = store.current
    store.update(p.id, engine_path="/opt/gzdoom", mods=[ModEntry("/m.pk3")], extra_arguments="-fast")
    ok, msg = launch.run_now(store, p.id)
    assert ok, msg
    argv, kw = fake_popen[0]
    assert argv[0] == "/opt/gzdoom"
    assert argv[-1] == "-fast"
    assert "-file" in argv and "/m.pk3" in argv
    assert os.path.isdir(store.locations.save_dir(p.save_folder_name))
    assert os.path.exists(store.locations.logs_file)


def test_run_now_unknown_profile(store, fake_popen):
    assert launch.run_now(store, "nope") == (False, "No such profile.")
    assert fake_popen == []


def test_run_now_spawn_failure(store, monkeypatch):
    def boom(*a, **kw):
        raise FileNotFoundError("no engine")
    monkeypatch.setattr("makeitso.launch.subprocess.Popen", boom)
    ok, msg = launch.run_now(store, store.current.id)
    assert not ok
    assert "no engine" in msg


def test_backup_runs_after_exit(store, fake_popen, tmp_path):
    p = store.current
    dest = tmp_path / "dest"
    store.update(p.id, backup_after_launch=True, backup_dest_path=str(dest), compress_backups=False)
    ok, _ = launch.run_now(store, p.id)
    assert ok
    assert _wait_for(lambda: dest.exists() and any(dest.iterdir()))


def test_on_exit_called_once(store, fake_popen):
    codes = []
    ok, _ = launch.run_now(store, store.current.id, on_exit=codes.append)
    assert ok
    assert _wait_for(lambda: codes == [0])
    time.sleep(0.05)
    assert codes == [0]


def test_drain_appends_output(tmp_path):
    log_path = tmp_path / "session.log"
    log_path.write_bytes(b"before\n")
    launch._drain(io.BytesIO(b"engine output\n"), str(log_path))
    assert log_path.read_bytes() == b"before\nengine output\n"


def test_engage_prefers_script(store, fake_popen, monkeypatch):
    monkeypatch.setattr("makeitso.launch.is_macos", lambda: False)
    p = store.current
    _, script = launch.artifact_paths(p, store.locations.scripts_root)
    script.parent.mkdir(parents=True)
    script.write_text("#!/bin/bash\n")
    ok, msg = launch.engage(store, p.id)
    assert ok and msg == "Started built script."
    assert fake_popen[0][0] == ["/usr/bin/env", "bash", str(script)]


def test_engage_falls_back_to_run_now(store, fake_popen):
    ok, _ = launch.engage(store, store.current.id)
    assert ok
    assert fake_popen[0][0][1] == "-savedir"


def test_session_log_tail(tmp_path):
    path = tmp_path / "session.log"
    assert launch.session_log_tail(str(path)) == ""
    path.write_bytes(b"x" * 100 + b"tail")
    assert launch.session_log_tail(str(path), max_bytes=4) == "tail"
