import io
import json

from makeitso.models import ModEntry
from makeitso.utils import abbrev_deep

JSON = {"Accept": "application/json"}


def test_index_renders(client, store):
    r = client.get("/")
    assert r.status_code == 200
    assert store.current.name.encode() in r.data
    assert b"Make It So" in r.data


def test_index_selects_by_query(client, store):
    second = store.add()
    store.select(store.profiles[0].id)
    client.get(f"/?id={second.id}")
    assert store.selected_id == second.id


def test_add_and_delete(client, store):
    r = client.post("/profiles/add")
    assert r.status_code == 302
    assert len(store.profiles) == 2
    added = store.profiles[-1]
    client.post("/profiles/delete", data={"ids": [added.id]})
    assert len(store.profiles) == 1
    client.post("/profiles/undo")
    assert store.profiles[-1].id == added.id


def test_delete_locked_reports(client, store):
    p = store.current
    client.post("/profiles/lock", data={"ids": [p.id], "value": "on"})
    r = client.post("/profiles/delete", data={"active_id": p.id}, headers=JSON)
    assert r.status_code == 500
    assert p.name in r.get_json()["error"]
    assert store.get(p.id) is not None


def test_edit_fields_and_checkboxes(client, store):
    p = store.current
    client.post(f"/profiles/{p.id}/edit", data={
        "engine_path": "/opt/gzdoom",
        "extra_arguments": "-fast",
        "retention_count": "5",
        "backup_saves": "on",
    })
    assert p.engine_path == "/opt/gzdoom"
    assert p.retention_count == 5
    assert p.backup_saves is True
    assert p.backup_engine_ini is False
    assert p.edited_command_line.startswith("/opt/gzdoom")


def test_privacy_view_saves_expanded_paths(client, store):
    p = store.current
    store.update(p.id, show_filenames_only=True, allow_cli_edit_while_private=True)
    store.regenerate_preview(p.id)
    before = p.edited_command_line
    home = store.locations.home
    assert home in before
    shown = abbrev_deep(before, home)
    assert b"~/Documents/GZDoom" in client.get("/").data

    form = {"show_filenames_only": "on", "allow_cli_edit_while_private": "on"}
    client.post(f"/profiles/{p.id}/edit", data=dict(form, edited_command_line=shown))
    assert p.edited_command_line == before

    client.post(f"/profiles/{p.id}/edit", data=dict(form, edited_command_line=shown + " -fast"))
    assert p.edited_command_line == before + " -fast"


def test_mods_actions(client, store):
    p = store.current
    client.post(f"/profiles/{p.id}/mods", data={"action": "add", "paths": "/a.pk3\n\n/b.pk3\n"})
    assert [m.path for m in p.mods] == ["/a.pk3", "/b.pk3"]
    client.post(f"/profiles/{p.id}/mods", data={"action": "disable", "mod_id": p.mods[0].id})
    assert p.mods[0].enabled is False
    r = client.get(f"/profiles/{p.id}/modlist")
    assert r.data == b"/b.pk3"
    assert client.post(f"/profiles/{p.id}/mods", data={"action": "bogus"}).status_code == 400


def test_unknown_profile_404(client):
    assert client.post("/profiles/nope/rename", data={"name": "x"}).status_code == 404


def test_preview_json(client, store):
    p = store.current
    r = client.post(f"/profiles/{p.id}/preview", headers=JSON)
    assert r.get_json()["preview"] == p.edited_command_line


def test_export_and_import(client, store):
    store.current.mods = [ModEntry(store.locations.home + "/mods/x.pk3")]
    r = client.get("/export?scope=all")
    assert "MakeItSo-Profiles-All.json" in r.headers["Content-Disposition"]
    data = json.loads(r.data)
    assert data["profiles"][0]["mods"][0]["name"] == "~/mods/x.pk3"

    r = client.post("/import", data={"bundle": (io.BytesIO(r.data), "bundle.json")},
                    content_type="multipart/form-data", headers=JSON)
    assert r.status_code == 200
    assert len(store.profiles) == 2
    assert store.profiles[1].name.endswith("(1)")


def test_import_malformed(client, store):
    r = client.post("/import", data={"bundle": (io.BytesIO(b"nope"), "x.json")},
                    content_type="multipart/form-data", headers=JSON)
    assert r.status_code == 500
    assert "not a valid" in r.get_json()["error"]
    assert len(store.profiles) == 1


def test_import_bad_mods_field(client, store):
    bad = json.dumps({"profiles": [{"name": "Bad", "mods": True}]}).encode()
    r = client.post("/import", data={"bundle": (io.BytesIO(bad), "x.json")},
                    content_type="multipart/form-data", headers=JSON)
    assert r.status_code == 500
    assert "not a valid" in r.get_json()["error"]
    assert len(store.profiles) == 1


def test_quick_launch_menu(client, store, fake_popen):
    p = store.current
    assert client.get("/quick").get_json() == {"profiles": []}
    store.update(p.id, pinned_to_quick_launch=True)
    assert client.get("/quick").get_json() == {"profiles": [{"id": p.id, "name": p.name}]}
    r = client.post(f"/quick/{p.id}")
    assert r.get_json()["ok"] is True
    assert fake_popen


def test_build_writes_artifacts(client, store, tmp_path):
    p = store.current
    r = client.post(f"/profiles/{p.id}/build", data={"target_dir": str(tmp_path / "out")}, headers=JSON)
    assert r.status_code == 200
    assert any(f.suffix == ".sh" for f in (tmp_path / "out").iterdir())


def test_backup_route(client, store, tmp_path):
    p = store.current
    store.update(p.id, backup_dest_path=str(tmp_path / "dest"))
    r = client.post(f"/profiles/{p.id}/backup", headers=JSON)
    assert r.status_code == 200
    assert any((tmp_path / "dest").iterdir())
