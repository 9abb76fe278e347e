import pytest

from makeitso import create_app
from makeitso.store import ProfileStore
from makeitso.utils import Locations


@pytest.fixture
def home(tmp_path, monkeypatch):
    h = tmp_path / "home"
    h.mkdir()
    monkeypatch.setenv("MAKEITSO_HOME", str(h))
    return h


@pytest.fixture
def locations(home):
    return Locations(home)


@pytest.fixture
def store(locations):
    s = ProfileStore(locations)
    s.load()
    return s


@pytest.fixture
def app(store):
    app = create_app(store)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


class FakePopen:
    """Records argv; ``wait`` returns at once."""
    calls = []

    def __init__(self, args, **kw):
        FakePopen.calls.append((args, kw))
        self.args = args
        self.stdout = None
        self.returncode = 0

    def wait(self):
        return self.returncode


@pytest.fixture
def fake_popen(monkeypatch):
    FakePopen.calls = []
    monkeypatch.setattr("makeitso.launch.subprocess.Popen", FakePopen)
    return FakePopen.calls
