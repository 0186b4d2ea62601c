import pytest

from devinit import config
from devinit.lib import paths, store
from devinit.registry import aliases, projects

MANIFEST = """\
[programs]
    [[programs.list]]
    name = "shell"
    path = "/bin/sh"
    commands = ["echo hello"]
"""


@pytest.fixture
def devinit_home(monkeypatch, tmp_path):
    """Isolated data directory per test.

    Provides:
    - tmp_path/devinit as the data dir instead of the real per-user one
    - fresh connection cache (setup + teardown reset)
    - cleared config cache

    ALL tests touching the store must accept this fixture.
    """
    store._reset_for_testing()
    config.clear_cache()

    home = tmp_path / "devinit"
    monkeypatch.setattr(paths, "data_dir", lambda: home)

    yield home

    store._reset_for_testing()
    config.clear_cache()


@pytest.fixture
def project(devinit_home):
    """A project named 'web' with aliases w (primary) and ww."""
    project_id = projects.add("web", MANIFEST)
    aliases.add_batch(project_id, ["w", "ww"])
    return project_id
