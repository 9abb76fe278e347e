INDEX_HTML = r"""<!doctype html>
<html lang="en" data-bs-theme="dark">
<head>
  <meta charset="utf-8">
  <title>{{ app_title }}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/css/bootstrap.min.css" rel="stylesheet">
  <style>
    .card { border: 1px solid rgba(255,255,255,.08); }
    .path { color: rgba(255,255,255,.6); }
    code.path, .cli { word-break: break-all; font-family: monospace; }
    .sidebar .active-profile { background: rgba(255,255,255,.08); }
  </style>
</head>
<body>
<nav class="navbar navbar-expand-lg bg-body-tertiary px-3">
  <a class="navbar-brand" href="{{ url_for('makeitso.index') }}">{{ app_title }}</a>
  <div class="ms-auto d-flex gap-2">
    <a class="btn btn-outline-light btn-sm" href="{{ url_for('makeitso.export_profiles', scope='all') }}">Export All</a>
    {% if current %}
      <a class="btn btn-outline-light btn-sm" href="{{ url_for('makeitso.export_profiles', scope='selected') }}">Export Selected</a>
    {% endif %}
    <form action="{{ url_for('makeitso.import_profiles') }}" method="post" enctype="multipart/form-data" class="d-flex gap-1">
      <input class="form-control form-control-sm" type="file" name="bundle" accept=".json">
      <button class="btn btn-outline-light btn-sm" type="submit">Import</button>
    </form>
    <a class="btn btn-outline-light btn-sm" href="{{ url_for('makeitso.session_log') }}">Log</a>
  </div>
</nav>

<div class="container-fluid py-4">
  {% with messages = get_flashed_messages() %}
    {% if messages %}
      <div class="alert alert-warning">{{ messages|join(' ') }}</div>
    {% endif %}
  {% endwith %}

  <div class="row g-4">
    <div class="col-md-3 sidebar">
      <form id="listForm" method="post">
        <input type="hidden" name="active_id" value="{{ current.id if current else '' }}">
        <ul class="list-group mb-2">
          {% for p in profiles %}
            <li class="list-group-item d-flex align-items-center gap-2 {% if current and p.id == current.id %}active-profile{% endif %}">
              <input class="form-check-input" type="checkbox" name="ids" value="{{ p.id }}">
              <a class="flex-grow-1 text-decoration-none" href="{{ url_for('makeitso.index', id=p.id) }}">{{ p.name }}</a>
              {% if p.locked %}<span class="badge text-bg-secondary">Locked</span>{% endif %}
              {% if p.pinned_to_quick_launch %}<span class="badge text-bg-info">Pinned</span>{% endif %}
            </li>
          {% endfor %}
        </ul>
        <div class="d-flex flex-wrap gap-1">
          <button class="btn btn-outline-success btn-sm" formaction="{{ url_for('makeitso.add_profile') }}">Add</button>
          <button class="btn btn-outline-danger btn-sm" formaction="{{ url_for('makeitso.delete_profiles') }}">Delete</button>
          <button class="btn btn-outline-light btn-sm" formaction="{{ url_for('makeitso.set_lock') }}" name="value" value="on">Lock</button>
          <button class="btn btn-outline-light btn-sm" formaction="{{ url_for('makeitso.set_lock') }}" name="value" value="off">Unlock</button>
          {% if can_undo %}
            <button class="btn btn-outline-warning btn-sm" formaction="{{ url_for('makeitso.undo_delete') }}">Undo Delete</button>
          {% endif %}
        </div>
      </form>
    </div>

    <div class="col-md-9">
    {% if not current %}
      <div class="text-center py-5">
        <h4>No profiles.</h4>
        <p class="text-secondary">Add one to get started.</p>
      </div>
    {% else %}
      {% set locked = current.locked %}
      <div class="card p-3 mb-3">
        <div class="d-flex align-items-center gap-2 mb-3">
          <form action="{{ url_for('makeitso.rename_profile', pid=current.id) }}" method="post" class="d-flex gap-2 flex-grow-1">
            <input class="form-control" type="text" name="name" value="{{ current.name }}" required>
            <button class="btn btn-outline-light" type="submit">Rename</button>
          </form>
          <form method="post" class="d-flex gap-1">
            <button class="btn btn-outline-light btn-sm" formaction="{{ url_for('makeitso.move_up', pid=current.id) }}" {% if locked %}disabled{% endif %}>Up</button>
            <button class="btn btn-outline-light btn-sm" formaction="{{ url_for('makeitso.move_down', pid=current.id) }}" {% if locked %}disabled{% endif %}>Down</button>
            <button class="btn btn-outline-light btn-sm" formaction="{{ url_for('makeitso.duplicate_profile', pid=current.id) }}">Duplicate</button>
            <button class="btn btn-outline-light btn-sm" formaction="{{ url_for('makeitso.toggle_lock', pid=current.id) }}">{{ 'Unlock' if locked else 'Lock' }}</button>
          </form>
        </div>

        <form action="{{ url_for('makeitso.edit_profile', pid=current.id) }}" method="post">
          <fieldset {% if locked %}disabled{% endif %}>
            <div class="mb-2">
              <label class="form-label">GZDoom</label>
              <input class="form-control" type="text" name="engine_path" value="{{ current.engine_path }}">
            </div>
            <div class="mb-2">
              <label class="form-label">IWAD</label>
              <input class="form-control" type="text" name="data_file_path" value="{{ current.data_file_path }}">
            </div>
            <div class="mb-2">
              <label class="form-label">Save folder</label>
              <input class="form-control" type="text" name="save_folder_name" value="{{ current.save_folder_name }}">
            </div>
            <div class="mb-2">
              <label class="form-label">Extra arguments</label>
              <textarea class="form-control cli" name="extra_arguments" rows="2">{{ current.extra_arguments }}</textarea>
            </div>

            <h6 class="mt-3">Backups</h6>
            <div class="mb-2">
              <input class="form-control" type="text" name="backup_dest_path" value="{{ current.backup_dest_path }}" placeholder="{{ default_backup_root }}">
            </div>
            <div class="d-flex flex-wrap gap-3 mb-2">
              {% for name, label in [('backup_launcher_ini', 'makeitso.ini'), ('backup_engine_ini', 'gzdoom.ini'),
                                     ('backup_autoexec', 'autoexec.cfg'), ('backup_saves', 'Saves'),
                                     ('backup_after_launch', 'Back up after run'), ('compress_backups', 'Zip')] %}
                <div class="form-check">
                  <input class="form-check-input" type="checkbox" id="{{ name }}" name="{{ name }}" {% if current[name] %}checked{% endif %}>
                  <label class="form-check-label" for="{{ name }}">{{ label }}</label>
                </div>
              {% endfor %}
              <div class="d-flex align-items-center gap-1">
                <label class="form-label mb-0" for="keep">Keep</label>
                <input class="form-control form-control-sm" style="width:5rem" type="number" min="1" max="30" id="keep" name="retention_count" value="{{ retention }}">
              </div>
            </div>
          </fieldset>

          <div class="d-flex flex-wrap gap-3 mb-2">
            {% for name, label in [('show_filenames_only', 'Privacy: filenames only'),
                                   ('allow_cli_edit_while_private', 'Allow CLI edit in privacy mode'),
                                   ('pinned_to_quick_launch', 'Pin to quick launch')] %}
              <div class="form-check">
                <input class="form-check-input" type="checkbox" id="{{ name }}" name="{{ name }}" {% if current[name] %}checked{% endif %}>
                <label class="form-check-label" for="{{ name }}">{{ label }}</label>
              </div>
            {% endfor %}
          </div>

          <label class="form-label">Command line</label>
          {% set cli_readonly = locked or (current.show_filenames_only and not current.allow_cli_edit_while_private) %}
          <textarea class="form-control cli mb-2" rows="3" {% if cli_readonly %}readonly{% else %}name="edited_command_line"{% endif %}>{{ preview }}</textarea>

          <button class="btn btn-primary" type="submit">Save</button>
        </form>
      </div>

      <div class="card p-3 mb-3">
        <h6>Mods</h6>
        {% if current.mods %}
          <div class="table-responsive mb-2">
            <table class="table table-dark table-sm align-middle">
              <tbody>
              {% for m in current.mods %}
                <tr>
                  <td style="width:6%">{{ 'on' if m.enabled else 'off' }}</td>
                  <td><code class="path">{{ m.path.split('/')[-1] if current.show_filenames_only else m.path }}</code></td>
                  <td style="width:30%">
                    <form action="{{ url_for('makeitso.edit_mods', pid=current.id) }}" method="post" class="d-flex gap-1">
                      <input type="hidden" name="mod_id" value="{{ m.id }}">
                      <fieldset class="d-flex gap-1" {% if locked %}disabled{% endif %}>
                        <button class="btn btn-outline-light btn-sm" name="action" value="{{ 'disable' if m.enabled else 'enable' }}">{{ 'Disable' if m.enabled else 'Enable' }}</button>
                        <button class="btn btn-outline-light btn-sm" name="action" value="up">Up</button>
                        <button class="btn btn-outline-light btn-sm" name="action" value="down">Down</button>
                        <button class="btn btn-outline-danger btn-sm" name="action" value="remove">Remove</button>
                      </fieldset>
                    </form>
                  </td>
                </tr>
              {% endfor %}
              </tbody>
            </table>
          </div>
          <a class="small" href="{{ url_for('makeitso.mod_list', pid=current.id) }}">Mod list as text</a>
        {% else %}
          <div class="alert alert-info">No mods yet.</div>
        {% endif %}
        <form action="{{ url_for('makeitso.edit_mods', pid=current.id) }}" method="post" class="mt-2">
          <fieldset {% if locked %}disabled{% endif %}>
            <textarea class="form-control cli mb-2" name="paths" rows="2" placeholder="One path per line"></textarea>
            <button class="btn btn-outline-info btn-sm" name="action" value="add">Add files</button>
          </fieldset>
        </form>
      </div>

      <div class="card p-3">
        <div class="d-flex flex-wrap gap-2 align-items-center">
          <form method="post" class="d-flex gap-2">
            <button class="btn btn-success" formaction="{{ url_for('makeitso.run_profile', pid=current.id) }}">Run</button>
            <button class="btn btn-outline-success" formaction="{{ url_for('makeitso.engage_profile', pid=current.id) }}">Engage</button>
            <button class="btn btn-outline-warning" formaction="{{ url_for('makeitso.backup_profile', pid=current.id) }}">Backup Now</button>
          </form>
          <form action="{{ url_for('makeitso.build_profile', pid=current.id) }}" method="post" class="d-flex gap-2 ms-auto">
            <input class="form-control" type="text" name="target_dir" placeholder="{{ scripts_root }}">
            <button class="btn btn-outline-light" type="submit">Build Script + App</button>
          </form>
        </div>
      </div>
    {% endif %}
    </div>
  </div>
</div>
</body>
</html>
"""
