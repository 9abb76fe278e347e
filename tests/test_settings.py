import json

from makeitso.models import ModEntry, Profile, StoreSnapshot
from makeitso.settings import (
    decode, decode_with_migration, encode, escape, load_snapshot, parse_bool,
    parse_ini, save_snapshot, unquote,
)


def _snapshot():
    a = Profile(name="Brutal", save_folder_name="brutal doom", extra_arguments="-nomusic\n+set x 1",
                mods=[ModEntry("/mods/a.pk3"), ModEntry("~/b.wad", enabled=False)],
                retention_count=7, compress_backups=False, locked=True)
    b = Profile(name="  spaced ; name  ", edited_command_line='gzdoom "-file" "/x y/z.pk3"',
                backup_dest_path='"quoted"')
    return StoreSnapshot(profiles=[a, b], selected_id=b.id)


def test_round_trip():
    s = _snapshot()
    assert decode(encode(s)) == s


def test_encode_is_deterministic():
    s = _snapshot()
    assert encode(s) == encode(s)


def test_mods_section_follows_profile():
    s = _snapshot()
    text = encode(s)
    pid = s.profiles[0].id
    base = text.index(f"[Profile.{pid}]")
    mods = text.index(f"[Profile.{pid}.Mods]")
    nxt = text.index(f"[Profile.{s.profiles[1].id}]")
    assert base < mods < nxt
    assert "count=2" in text
    assert "mod1.enabled=false" in text


def test_parse_bool():
    assert parse_bool("TRUE", False) is True
    assert parse_bool("Off", True) is False
    assert parse_bool("maybe", True) is True
    assert parse_bool(None, False) is False


def test_escape_and_unquote():
    assert escape("plain") == "plain"
    assert escape("a;b") == '"a;b"'
    assert escape(" lead") == '" lead"'
    assert escape("two\nlines") == "two\\nlines"
    for value in ("a;b", ' x "y" ', "two\nlines", '"q"'):
        assert unquote(escape(value)) == value


def test_parse_ini_skips_comments():
    ini = parse_ini("; c\n# c\n// c\n\n[A]\nk = v \r\nnoequals\n")
    assert ini == {"A": {"k": "v"}}


def test_empty_or_garbage_gives_default():
    for text in (None, "", "garbage without sections", "{not json"):
        s = decode(text)
        assert len(s.profiles) == 1
        assert s.selected_id == s.profiles[0].id


def test_order_missing_uses_discovery_order():
    text = "[Profile.B]\nname=Bee\n[Profile.B.Mods]\ncount=0\n[Profile.A]\nname=Ay\n"
    s = decode(text)
    assert [p.id for p in s.profiles] == ["B", "A"]
    assert s.selected_id == "B"


def test_listed_id_without_section_is_skipped():
    text = "[Profiles]\norder=X,A\n[Profile.A]\nname=Ay\nbackupGZIni=nope\nbackupKeepCount=abc\n"
    s = decode(text)
    assert [p.id for p in s.profiles] == ["A"]
    p = s.profiles[0]
    assert p.backup_engine_ini is True
    assert p.retention_count == 10


def test_empty_mod_paths_are_skipped():
    text = ("[Profiles]\norder=A\n[Profile.A]\nname=Ay\n[Profile.A.Mods]\n"
            "count=3\nmod0.path=\nmod1.path=/m.pk3\nmod1.enabled=off\nmod2.path=/n.pk3\n")
    p = decode(text).profiles[0]
    assert p.mods == [ModEntry("/m.pk3", enabled=False), ModEntry("/n.pk3")]


def test_unknown_selected_falls_back_to_first():
    text = "[MakeItSo]\nselected=ZZZ\n[Profiles]\norder=A\n[Profile.A]\nname=Ay\n"
    assert decode(text).selected_id == "A"


def _legacy_blob():
    return json.dumps({
        "profiles": [
            {"id": "P1", "name": "Old", "gzdoomPath": "/Applications/GZDoom.app",
             "mods": [{"id": "M1", "name": "/mods/old.pk3", "enabled": True}],
             "backupKeepCount": 5, "locked": True},
            {"id": "P2", "name": "Older"},
        ],
        "selected": "P2",
    })


def test_legacy_json_is_migrated():
    s, migrated = decode_with_migration("  \n" + _legacy_blob())
    assert migrated
    assert [p.name for p in s.profiles] == ["Old", "Older"]
    assert s.selected_id == "P2"
    assert s.profiles[0].retention_count == 5
    assert s.profiles[0].mods[0].path == "/mods/old.pk3"


def test_legacy_migration_idempotent():
    once = decode(_legacy_blob())
    assert decode(encode(once)) == once


def test_load_snapshot_rewrites_legacy_file(tmp_path):
    cfg = tmp_path / "prefs" / "makeitso.ini"
    cfg.parent.mkdir()
    cfg.write_text(_legacy_blob(), encoding="utf-8")
    s = load_snapshot(cfg)
    text = cfg.read_text(encoding="utf-8")
    assert text.startswith(";")
    assert "[Profile.P1]" in text
    assert load_snapshot(cfg) == s


def test_save_snapshot_replaces_atomically(tmp_path):
    cfg = tmp_path / "makeitso.ini"
    s = _snapshot()
    save_snapshot(cfg, s)
    save_snapshot(cfg, s)
    assert [f.name for f in tmp_path.iterdir()] == ["makeitso.ini"]
    assert load_snapshot(cfg) == s


def test_unset_selection_decodes_to_first_profile():
    # no selection with profiles present comes back selecting the first one
    s = StoreSnapshot(profiles=[Profile(name="A"), Profile(name="B")], selected_id=None)
    assert "selected=" not in encode(s)
    assert decode(encode(s)).selected_id == s.profiles[0].id
