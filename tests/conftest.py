"""Shared fixtures: an in-memory registry and an isolated home directory."""
from pathlib import Path

import pytest

from kamal_secrets_sync.secrets.domains import preferences
from kamal_secrets_sync.secrets.domains.errors import RegistryUnavailable


class FakeRegistry:
    """In-memory stand-in for BwsSecretClient that records every call."""

    def __init__(self, projects=None, secrets=None):
        # projects: {name: id}; secrets: {project_id: {key: (id, value)}}
        self.projects = dict(projects or {})
        self.secrets = {pid: dict(entries) for pid, entries in (secrets or {}).items()}
        self.calls = []
        self.fail_keys = {}
        self.fail_listing = None
        self.fail_snapshot = None
        self._next_id = 1

    def _new_id(self, prefix):
        value = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return value

    def list_projects(self):
        self.calls.append(("list_projects",))
        if self.fail_listing is not None:
            raise self.fail_listing
        return [{"name": name, "id": pid} for name, pid in self.projects.items()]

    def create_project(self, name):
        self.calls.append(("create_project", name))
        pid = self._new_id("proj")
        self.projects[name] = pid
        return pid

    def list_secrets(self, project_id):
        self.calls.append(("list_secrets", project_id))
        if self.fail_snapshot is not None:
            raise self.fail_snapshot
        entries = self.secrets.get(project_id, {})
        return [{"key": key, "id": sid} for key, (sid, _value) in entries.items()]

    def create_secret(self, key, value, project_id):
        self.calls.append(("create_secret", key, project_id))
        if key in self.fail_keys:
            raise self.fail_keys[key]
        sid = self._new_id("sec")
        self.secrets.setdefault(project_id, {})[key] = (sid, value)
        return sid

    def edit_secret(self, secret_id, key, value):
        self.calls.append(("edit_secret", secret_id, key))
        if key in self.fail_keys:
            raise self.fail_keys[key]
        for entries in self.secrets.values():
            if key in entries and entries[key][0] == secret_id:
                entries[key] = (secret_id, value)
                return secret_id
        raise RegistryUnavailable(f"secret {secret_id} not found")

    @property
    def mutations(self):
        return [call for call in self.calls if call[0] in ("create_secret", "edit_secret", "create_project")]

    def value_of(self, project_id, key):
        return self.secrets[project_id][key][1]


@pytest.fixture
def registry():
    """Empty fake registry."""
    return FakeRegistry()


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    monkeypatch.delenv("KAMAL_SECRETS_PROJECT", raising=False)

    fake_config_dir = fake_home / ".config" / "kamal-secrets-sync"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")

    return fake_home


@pytest.fixture
def app_dir(tmp_path):
    """A Kamal app checkout with deploy.yml and .env."""
    root = tmp_path / "app"
    (root / "config").mkdir(parents=True)
    (root / "config" / "deploy.yml").write_text(
        "service: shop\n"
        "image: acme/shop\n"
        "env:\n"
        "  clear:\n"
        "    RAILS_ENV: production\n"
        "  secret:\n"
        "    - API_KEY\n"
        "    - DB_PASS\n",
        encoding="utf-8",
    )
    (root / ".env").write_text('API_KEY="abc"\nDB_PASS=xyz\n', encoding="utf-8")
    return root
