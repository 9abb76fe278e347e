from __future__ import annotations
import io
from flask import Blueprint, current_app, render_template_string, redirect, url_for, flash, request, send_file, abort, jsonify, Response

from .backup import BackupEngine, BackupError
from .commandline import build, mod_list_text, render_preview
from .launch import engage, run_now, session_log_tail
from .models import FIELD_TYPES
from .portable import ImportFormatError, dump_export, export_filename, import_into
from .scriptgen import ArtifactError, build_artifacts
from .utils import abbrev_deep, clamp_retention, expand_deep

from .templates import INDEX_HTML

bp = Blueprint("makeitso", __name__)

TEXT_FIELDS = ("engine_path", "data_file_path", "save_folder_name", "extra_arguments", "backup_dest_path")
CHECK_FIELDS = tuple(
    name for name, kind in FIELD_TYPES.items() if kind is bool and name != "locked"
)


def _store():
    return current_app.extensions["makeitso"]

def _profile_or_404(pid):
    p = _store().get(pid)
    if p is None:
        abort(404)
    return p

def _wants_json() -> bool:
    return request.accept_mimetypes.accept_json and not request.accept_mimetypes.accept_html

def _reply(ok: bool, msg: str, pid=None):
    """JSON for API clients, flash + redirect for the browser."""
    store = _store()
    if store.message:
        flash(store.message)
        store.message = ""
    if _wants_json():
        return (jsonify({"ok": ok, ("message" if ok else "error"): msg}), 200 if ok else 500)
    if msg:
        flash(msg)
    return redirect(url_for("makeitso.index", id=pid) if pid else url_for("makeitso.index"))

def _form_ids():
    return [i for i in request.form.getlist("ids") if i]

@bp.get("/")
def index():
    store = _store()
    pid = request.args.get("id")
    if pid:
        store.select(pid)
    p = store.current
    preview = ""
    if p is not None:
        cmd = build(p, store.locations)
        preview = p.edited_command_line or render_preview(cmd.executable, cmd.args)
        if p.show_filenames_only:
            preview = abbrev_deep(preview, store.locations.home)
    return render_template_string(
        INDEX_HTML,
        app_title=current_app.config["APP_TITLE"],
        profiles=store.profiles,
        current=p,
        preview=preview,
        can_undo=store.can_undo,
        retention=clamp_retention(p.retention_count) if p else None,
        default_backup_root=store.locations.default_backup_root,
        scripts_root=store.locations.scripts_root,
    )

# --- profile list ---

@bp.post("/profiles/add")
def add_profile():
    p = _store().add()
    return _reply(True, f"Added {p.name}.", p.id)

@bp.post("/profiles/<pid>/duplicate")
def duplicate_profile(pid):
    clone = _store().duplicate(pid)
    if clone is None:
        abort(404)
    return _reply(True, f"Duplicated as {clone.name}.", clone.id)

@bp.post("/profiles/delete")
def delete_profiles():
    store = _store()
    skipped = store.delete_selection(set(_form_ids()), request.form.get("active_id"))
    if skipped:
        return _reply(False, "Skipped locked profile(s): " + ", ".join(skipped))
    return _reply(True, "Deleted.")

@bp.post("/profiles/undo")
def undo_delete():
    p = _store().undo_delete()
    if p is None:
        return _reply(False, "Nothing to undo.")
    return _reply(True, f"Restored {p.name}.", p.id)

@bp.post("/profiles/<pid>/up")
def move_up(pid):
    _store().move_up(pid)
    return _reply(True, "", pid)

@bp.post("/profiles/<pid>/down")
def move_down(pid):
    _store().move_down(pid)
    return _reply(True, "", pid)

@bp.post("/profiles/reorder")
def reorder():
    try:
        indices = [int(i) for i in request.form.getlist("from")]
        to = int(request.form.get("to", ""))
    except ValueError:
        abort(400)
    _store().reorder(indices, to)
    return _reply(True, "")

@bp.post("/profiles/lock")
def set_lock():
    store = _store()
    ids = _form_ids() or ([store.selected_id] if store.selected_id else [])
    locked = request.form.get("value", "on") == "on"
    store.set_locked(ids, locked)
    return _reply(True, "Locked." if locked else "Unlocked.")

@bp.post("/profiles/<pid>/toggle_lock")
def toggle_lock(pid):
    _profile_or_404(pid)
    _store().toggle_lock(pid)
    return _reply(True, "", pid)

# --- profile fields ---

@bp.post("/profiles/<pid>/rename")
def rename_profile(pid):
    _profile_or_404(pid)
    _store().rename(pid, request.form.get("name", ""))
    return _reply(True, "", pid)

@bp.post("/profiles/<pid>/edit")
def edit_profile(pid):
    store = _store()
    p = _profile_or_404(pid)
    fields = {}
    for name in TEXT_FIELDS:
        if name in request.form:
            fields[name] = request.form[name]
    for name in CHECK_FIELDS:
        fields[name] = bool(request.form.get(name))
    keep = request.form.get("retention_count", "").strip()
    if keep:
        try:
            fields["retention_count"] = int(keep)
        except ValueError:
            flash("Keep count must be a number.")
    if "edited_command_line" in request.form:
        cli = request.form["edited_command_line"]
        if p.show_filenames_only:
            # shown with ~ in place of home; stored expanded
            cli = expand_deep(cli, store.locations.home)
        if cli != p.edited_command_line:
            fields["edited_command_line"] = cli

    store.update(pid, **fields)
    msg = "Profile is locked; launch settings unchanged." if p.locked else "Saved."
    return _reply(True, msg, pid)

@bp.post("/profiles/<pid>/preview")
def regenerate_preview(pid):
    _profile_or_404(pid)
    preview = _store().regenerate_preview(pid)
    if _wants_json():
        return jsonify({"ok": True, "preview": preview})
    return redirect(url_for("makeitso.index", id=pid))

@bp.post("/profiles/<pid>/mods")
def edit_mods(pid):
    store = _store()
    _profile_or_404(pid)
    action = request.form.get("action", "")
    mod_id = request.form.get("mod_id", "")
    if action == "add":
        paths = [line.strip() for line in request.form.get("paths", "").splitlines()]
        store.add_mods(pid, [x for x in paths if x])
    elif action == "remove":
        store.remove_mod(pid, mod_id)
    elif action == "up":
        store.move_mod(pid, mod_id, -1)
    elif action == "down":
        store.move_mod(pid, mod_id, 1)
    elif action in ("enable", "disable"):
        store.set_mod_enabled(pid, mod_id, action == "enable")
    else:
        abort(400)
    return _reply(True, "", pid)

@bp.get("/profiles/<pid>/modlist")
def mod_list(pid):
    p = _profile_or_404(pid)
    text = mod_list_text(
        p,
        _store().locations.home,
        enabled_only=request.args.get("all") is None,
        filenames_only=p.show_filenames_only or request.args.get("names") is not None,
    )
    return Response(text, mimetype="text/plain")

# --- actions ---

@bp.post("/profiles/<pid>/run")
def run_profile(pid):
    _profile_or_404(pid)
    ok, msg = run_now(_store(), pid)
    return _reply(ok, ("Launch requested. " if ok else "Launch failed: ") + msg, pid)

@bp.post("/profiles/<pid>/engage")
def engage_profile(pid):
    _profile_or_404(pid)
    ok, msg = engage(_store(), pid)
    return _reply(ok, msg, pid)

@bp.post("/profiles/<pid>/backup")
def backup_profile(pid):
    store = _store()
    p = _profile_or_404(pid)
    try:
        result = BackupEngine(store.locations).backup_now(p)
    except BackupError as e:
        return _reply(False, f"Backup failed: {e}", pid)
    return _reply(True, f"Backup saved to {result.location}.", pid)

@bp.post("/profiles/<pid>/build")
def build_profile(pid):
    store = _store()
    p = _profile_or_404(pid)
    target = request.form.get("target_dir", "").strip() or store.locations.scripts_root
    try:
        backup_root = BackupEngine(store.locations).resolve_destination(p)
        built = build_artifacts(p, target, store.locations, backup_root)
    except (ArtifactError, BackupError) as e:
        return _reply(False, str(e), pid)
    return _reply(True, f"Created {built.script} and {built.bundle}.", pid)

# --- sharing ---

@bp.get("/export")
def export_profiles():
    store = _store()
    ids = [i for i in request.args.getlist("ids") if i]
    scope = request.args.get("scope", "all")
    if ids:
        exporting = [p for p in store.profiles if p.id in ids]
    elif scope == "selected" and store.current is not None:
        exporting = [store.current]
    else:
        exporting = list(store.profiles)
    name = export_filename(
        len(exporting), len(store.profiles), store.current.name if store.current else "", from_selection=bool(ids)
    )
    data = dump_export(exporting, store.locations.home).encode("utf-8")
    return send_file(io.BytesIO(data), mimetype="application/json", as_attachment=True, download_name=name)

@bp.post("/import")
def import_profiles():
    file = request.files.get("bundle")
    if not file or not file.filename:
        return _reply(False, "Choose a file to import.")
    try:
        count, adjusted = import_into(_store(), file.read().decode("utf-8"))
    except (ImportFormatError, UnicodeDecodeError):
        return _reply(False, "Import failed: File is not a valid Make It So export.")
    if count == 0:
        return _reply(False, "Nothing to import: no profiles found in file.")
    msg = f"Imported {count} profile(s)."
    if adjusted:
        msg += " Some paths were adjusted for this machine's home folder or common defaults."
    return _reply(True, msg)

# --- quick launch ---

@bp.get("/quick")
def quick_menu():
    pins = [{"id": p.id, "name": p.name} for p in _store().pinned()]
    return jsonify({"profiles": pins})

@bp.post("/quick/<pid>")
def quick_launch(pid):
    _profile_or_404(pid)
    ok, msg = engage(_store(), pid)
    return (jsonify({"ok": ok, ("message" if ok else "error"): msg}), 200 if ok else 500)

@bp.get("/log")
def session_log():
    return Response(session_log_tail(_store().locations.logs_file), mimetype="text/plain")

@bp.get("/favicon.ico")
def favicon():
    return ("", 204)
