import json

import pytest

from makeitso.models import DEFAULT_ENGINE_PATH, ModEntry, Profile
from makeitso.portable import (
    ImportFormatError, dump_export, export_filename, export_view, import_into, import_normalize,
    localize_home, parse_import, rewrite_for_import,
)
from makeitso.utils import Locations, abbrev_deep, expand_deep


def _exists(_path):
    return True


def test_export_view_abbreviates_and_scrubs():
    home = "/Users/bob"
    p = Profile(engine_path="/Users/bob/Apps/GZDoom.app", data_file_path="/Users/bob/iwads/doom2.wad",
                backup_dest_path="/Users/bob/Backups", mods=[ModEntry("/Users/bob/mods/a.pk3")],
                edited_command_line="gz -file /Users/bob/a.pk3 /Users/carol/b.pk3 /home/dave/c.pk3")
    q = export_view(p, home)
    assert q.engine_path == "~/Apps/GZDoom.app"
    assert q.data_file_path == "~/iwads/doom2.wad"
    assert q.backup_dest_path == "~/Backups"
    assert q.mods[0].path == "~/mods/a.pk3"
    assert q.edited_command_line == "gz -file ~/a.pk3 ~/b.pk3 ~/c.pk3"
    # input profile is untouched
    assert p.mods[0].path == "/Users/bob/mods/a.pk3"


def test_dump_export_shape():
    text = dump_export([Profile(name="One", mods=[ModEntry("/m.pk3")])], "/Users/bob")
    data = json.loads(text)
    item = data["profiles"][0]
    assert item["name"] == "One"
    assert item["mods"][0]["name"] == "/m.pk3"
    assert "gzdoomPath" in item and "backupKeepCount" in item


def test_export_filename():
    assert export_filename(3, 3, "A") == "MakeItSo-Profiles-All.json"
    assert export_filename(1, 3, "A") == "MakeItSo-Profile-A.json"
    assert export_filename(2, 3, "A", from_selection=True) == "MakeItSo-Profiles-Selected.json"


def test_localize_home():
    assert localize_home("/Users/alice/Library/mods/mod.pk3", "/Users/bob") == "/Users/bob/Library/mods/mod.pk3"
    assert localize_home("~/x.wad", "/Users/bob") == "/Users/bob/x.wad"
    assert localize_home("/Users/alice", "/Users/bob") == "/Users/bob"
    assert localize_home("/opt/x.wad", "/Users/bob") == "/opt/x.wad"


def test_import_normalize_foreign_home():
    loc = Locations("/Users/bob")
    p = Profile(mods=[ModEntry("/Users/alice/Library/Application Support/gzdoom/mod.pk3")],
                engine_path="/Applications/GZDoom.app", data_file_path="/Users/bob/doom2.wad")
    (q,), adjusted = import_normalize([p], loc, _exists)
    assert q.mods[0].path == "/Users/bob/Library/Application Support/gzdoom/mod.pk3"
    assert adjusted


def test_import_normalize_fallbacks():
    loc = Locations("/Users/bob")
    p = Profile(engine_path="/Somewhere/GZDoom.app", data_file_path="/Volumes/USB/plutonia.wad")
    (q,), adjusted = import_normalize([p], loc, lambda path: False)
    assert q.engine_path == DEFAULT_ENGINE_PATH
    assert q.data_file_path == loc.support_dir + "/plutonia.wad"
    assert adjusted


def test_import_normalize_untouched():
    loc = Locations("/Users/bob")
    p = Profile(engine_path="/Applications/GZDoom.app", data_file_path="/Users/bob/doom2.wad",
                backup_dest_path="/Users/bob/b")
    _, adjusted = import_normalize([p], loc, _exists)
    assert not adjusted


def test_rewrite_for_import_names_and_ids():
    incoming = [Profile(name="X"), Profile(name="X"), Profile(name="Y")]
    out = rewrite_for_import(incoming, ["X", "X (1)"])
    assert [p.name for p in out] == ["X (2)", "X (3)", "Y"]
    assert not {p.id for p in out} & {p.id for p in incoming}


@pytest.mark.parametrize("text", [
    "not json", "42", '{"nope": []}', '{"profiles": [1, 2]}',
    '{"profiles": [{"name": "Bad", "mods": true}]}', '[{"name": "Bad", "mods": 3}]',
])
def test_parse_import_rejects(text):
    with pytest.raises(ImportFormatError):
        parse_import(text)


def test_parse_import_accepts_bare_list():
    assert [p.name for p in parse_import('[{"name": "A"}]')] == ["A"]


def test_import_into_appends_once(store):
    before = [p.id for p in store.profiles]
    text = json.dumps({"profiles": [{"name": store.profiles[0].name}, {"name": "Fresh"}]})
    count, _ = import_into(store, text, _exists)
    assert count == 2
    assert [p.id for p in store.profiles][:1] == before
    assert [p.name for p in store.profiles][1:] == [store.profiles[0].name + " (1)", "Fresh"]


def test_import_into_malformed_leaves_store(store):
    before = list(store.profiles)
    with pytest.raises(ImportFormatError):
        import_into(store, "{broken")
    assert store.profiles == before


def test_from_dict_ignores_non_list_mods():
    assert Profile.from_dict({"name": "A", "mods": True}).mods == []


def test_expand_deep_undoes_abbrev_deep():
    home = "/Users/bob"
    cli = '/Users/bob/gz -savedir /Users/bob/Documents/GZDoom/base -iwad "/Users/bob/x y.wad"'
    assert expand_deep(abbrev_deep(cli, home), home) == cli
    assert expand_deep("~", home) == home
