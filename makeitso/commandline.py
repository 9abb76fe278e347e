from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

from .models import Profile
from .utils import Locations, path_abbrev, path_expand, resolve_engine_binary

# Fields whose change alters the command line.
COMMAND_LINE_FIELDS = frozenset({
    "engine_path",
    "data_file_path",
    "save_folder_name",
    "mods",
    "extra_arguments",
})


@dataclass
class LaunchCommand:
    executable: str
    args: List[str]

    @property
    def argv(self) -> List[str]:
        return [self.executable] + self.args


@dataclass
class PreviewUpdate:
    preview: str
    must_persist: bool = True


def split_cli(s: str) -> List[str]:
    """Whitespace-separated tokens; '...' and "..." group, no backslash escapes."""
    args: List[str] = []
    cur = ""
    mode = None
    for ch in s:
        if mode is None:
            if ch in ('"', "'"):
                mode = ch
                continue
            if ch.isspace():
                if cur:
                    args.append(cur)
                    cur = ""
                continue
            cur += ch
        else:
            if ch == mode:
                mode = None
                continue
            cur += ch
    if cur:
        args.append(cur)
    return args


def needs_quoting(s: str) -> bool:
    return " " in s or '"' in s or "'" in s


def render_preview(executable: str, args: List[str]) -> str:
    # wraps but does not escape embedded quotes; split_cli cannot undo that either
    return " ".join(f'"{part}"' if needs_quoting(part) else part for part in [executable] + list(args))


def build(profile: Profile, locations: Locations) -> LaunchCommand:
    home = locations.home
    args = ["-savedir", locations.save_dir(profile.save_folder_name)]

    files = [path_expand(m.path, home) for m in profile.mods if m.enabled]
    if files:
        args.append("-file")
        args.extend(files)

    if profile.data_file_path:
        args.extend(["-iwad", path_expand(profile.data_file_path, home)])

    args.extend(split_cli(profile.extra_arguments))
    return LaunchCommand(executable=resolve_engine_binary(profile.engine_path), args=args)


def on_profile_field_changed(profile: Profile, locations: Locations) -> PreviewUpdate:
    """Rebuild the preview and overwrite ``profile.edited_command_line``.

    Manual edits to the preview are not merged; they are replaced.
    """
    cmd = build(profile, locations)
    preview = render_preview(cmd.executable, cmd.args)
    profile.edited_command_line = preview
    return PreviewUpdate(preview=preview)


def mod_list_text(profile: Profile, home: str, enabled_only: bool = True,
                  abbreviate_home: bool = True, filenames_only: bool = False) -> str:
    items = []
    for m in profile.mods:
        if enabled_only and not m.enabled:
            continue
        if filenames_only:
            items.append(os.path.basename(m.path))
        elif abbreviate_home and m.path != home:
            items.append(path_abbrev(m.path, home))
        else:
            items.append(m.path)
    return "\n".join(items)
