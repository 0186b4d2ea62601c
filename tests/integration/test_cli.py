import json
import shutil
import sqlite3
import sys
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from devinit import config
from devinit.cli import app
from devinit.lib import editor as text_editor
from devinit.registry import aliases, projects, settings

runner = CliRunner()

QUIET_MANIFEST = f"""\
[programs]
    [[programs.list]]
    name = "noop"
    path = "{sys.executable}"
    args = ["-c", "pass"]
    output_mode = "null"
"""


@pytest.fixture
def fake_editor(monkeypatch):
    """Replace the external editor with a queue of canned results."""
    responses = []
    seen = []

    def edit(initial_text, editor=None):
        seen.append((initial_text, editor))
        return responses.pop(0)

    monkeypatch.setattr(text_editor, "edit", edit)
    edit.responses = responses
    edit.seen = seen
    return edit


def test_no_args_shows_help(devinit_home):
    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert "Usage" in result.output


def test_add_project_with_aliases(devinit_home, fake_editor):
    fake_editor.responses.append(QUIET_MANIFEST)

    result = runner.invoke(app, ["add", "web", "--aliases", "w, ww"])

    assert result.exit_code == 0, result.output
    assert "Added project web with aliases w, ww." in result.output
    project = projects.get(["w"])
    assert project.name == "web"
    assert project.manifest == QUIET_MANIFEST
    assert aliases.primary(project.id) == "w"


def test_add_starts_from_template(devinit_home, fake_editor):
    fake_editor.responses.append(QUIET_MANIFEST)

    runner.invoke(app, ["add", "web", "--aliases", ""])

    initial_text, chosen_editor = fake_editor.seen[0]
    assert "[[programs.list]]" in initial_text
    assert chosen_editor is None


def test_add_uses_configured_editor(devinit_home, fake_editor):
    config.set_editor("nvim")
    fake_editor.responses.append(QUIET_MANIFEST)

    runner.invoke(app, ["add", "web", "--aliases", ""])

    assert fake_editor.seen[0][1] == "nvim"


def test_add_prompts_for_aliases(devinit_home, fake_editor):
    fake_editor.responses.append(QUIET_MANIFEST)

    result = runner.invoke(app, ["add", "--project", "web"], input="y\nw, ww\n")

    assert result.exit_code == 0, result.output
    assert sorted(a.alias for a in aliases.list_all()) == ["w", "ww"]


def test_add_without_aliases(devinit_home, fake_editor):
    fake_editor.responses.append(QUIET_MANIFEST)

    result = runner.invoke(app, ["add", "web"], input="n\n")

    assert result.exit_code == 0, result.output
    assert "Added project web." in result.output
    assert aliases.list_all() == []


def test_add_reopens_editor_after_bad_manifest(devinit_home, fake_editor):
    fake_editor.responses.extend(["[programs", QUIET_MANIFEST])

    result = runner.invoke(app, ["add", "web", "--aliases", ""], input="y\n")

    assert result.exit_code == 0, result.output
    assert "Invalid TOML" in result.output
    assert fake_editor.seen[1][0] == "[programs"
    assert projects.get(["web"]).manifest == QUIET_MANIFEST


def test_add_abort_after_bad_manifest_stores_nothing(devinit_home, fake_editor):
    fake_editor.responses.append("[programs")

    result = runner.invoke(app, ["add", "web", "--aliases", ""], input="n\n")

    assert result.exit_code == 1
    assert projects.get_all() == []


def test_add_with_taken_alias_stores_nothing(project, fake_editor):
    fake_editor.responses.append(QUIET_MANIFEST)

    result = runner.invoke(app, ["add", "api", "--aliases", "a,w"])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert [p.name for p in projects.get_all()] == ["web"]


def test_add_alias_to_project(project):
    result = runner.invoke(app, ["add", "--alias", "www", "--to", "web"])

    assert result.exit_code == 0, result.output
    assert "Added alias www to web." in result.output
    assert aliases.resolve("www") == project


def test_add_alias_conflict(project):
    result = runner.invoke(app, ["add", "--alias", "ww", "--to", "w"])

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_view(project):
    result = runner.invoke(app, ["view", "ww"])

    assert result.exit_code == 0
    assert "Project Name: web" in result.output
    assert "Aliases: w, ww" in result.output
    assert 'path = "/bin/sh"' in result.output


def test_view_unknown(devinit_home):
    result = runner.invoke(app, ["view", "nope"])

    assert result.exit_code == 1
    assert "Error: No project matches nope" in result.output


def test_list_empty(devinit_home):
    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "No projects found." in result.output


def test_list_json(project):
    result = runner.invoke(app, ["list", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data == [
        {
            "id": project,
            "name": "web",
            "aliases": ["w", "ww"],
            "manifest": projects.get_by_id(project).manifest,
        }
    ]


def test_remove_project_confirmed(project):
    result = runner.invoke(app, ["remove", "w"], input="y\n")

    assert result.exit_code == 0, result.output
    assert "Removed project w." in result.output
    assert projects.get_all() == []
    assert aliases.list_all() == []


def test_remove_project_declined(project):
    result = runner.invoke(app, ["remove", "w"], input="n\n")

    assert result.exit_code == 0
    assert len(projects.get_all()) == 1


def test_remove_alias(project):
    result = runner.invoke(app, ["remove", "--alias", "ww", "--yes"])

    assert result.exit_code == 0
    assert not aliases.exists("ww")


def test_remove_primary_alias_refused(project):
    result = runner.invoke(app, ["remove", "--alias", "w", "-y"])

    assert result.exit_code == 1
    assert "primary" in result.output
    assert aliases.exists("w")


def test_edit_manifest(project, fake_editor):
    fake_editor.responses.append(QUIET_MANIFEST)

    result = runner.invoke(app, ["edit", "ww"])

    assert result.exit_code == 0, result.output
    assert "Updated manifest for web." in result.output
    assert 'path = "/bin/sh"' in fake_editor.seen[0][0]
    assert projects.get_by_id(project).manifest == QUIET_MANIFEST


def test_set_flag_toggles(devinit_home):
    first = runner.invoke(app, ["set", "uwsm"])
    second = runner.invoke(app, ["set", "use_session_wrapper"])

    assert "use_session_wrapper = true" in first.output
    assert "use_session_wrapper = false" in second.output
    assert settings.get().use_session_wrapper is False


def test_set_flag_explicit(devinit_home):
    result = runner.invoke(app, ["set", "use_session_wrapper", "on"])

    assert result.exit_code == 0
    assert settings.get().use_session_wrapper is True


def test_set_flag_bad_value(devinit_home):
    result = runner.invoke(app, ["set", "use_session_wrapper", "maybe"])

    assert result.exit_code == 1
    assert "Invalid input" in result.output


def test_set_unknown_option(devinit_home):
    result = runner.invoke(app, ["set", "colour"])

    assert result.exit_code == 1
    assert "Unknown option: colour" in result.output


def test_set_editor(devinit_home):
    result = runner.invoke(app, ["set", "editor", "sh -e"])

    assert result.exit_code == 0, result.output
    assert config.editor() == f"{shutil.which('sh')} -e"


def test_set_editor_not_found(devinit_home):
    result = runner.invoke(app, ["set", "editor", "no-such-editor-devinit"])

    assert result.exit_code == 1
    assert "not found" in result.output
    assert config.editor() is None


def test_run_by_alias(devinit_home):
    projects.create("quiet", QUIET_MANIFEST, ["q"])

    result = runner.invoke(app, ["run", "q"])

    assert result.exit_code == 0, result.output
    assert "Started noop (pid" in result.output


def test_alias_as_command(devinit_home):
    projects.create("quiet", QUIET_MANIFEST, ["q"])

    result = runner.invoke(app, ["q"])

    assert result.exit_code == 0, result.output
    assert "Started noop (pid" in result.output


def test_name_as_command(devinit_home):
    projects.create("quiet", QUIET_MANIFEST, [])

    result = runner.invoke(app, ["quiet"])

    assert result.exit_code == 0, result.output
    assert "Started noop" in result.output


def test_unknown_command(devinit_home):
    result = runner.invoke(app, ["nope"])

    assert result.exit_code == 2


def test_run_project_without_programs(devinit_home):
    projects.create("empty", "[programs]\n", ["e"])

    result = runner.invoke(app, ["run", "e"])

    assert result.exit_code == 0
    assert "has no programs to launch" in result.output


def test_run_invalid_manifest(devinit_home):
    projects.create("broken", "[programs", ["b"])

    result = runner.invoke(app, ["run", "b"])

    assert result.exit_code == 1
    assert "Invalid TOML" in result.output


def test_run_launch_failure(devinit_home):
    text = '[[programs.list]]\nname = "ghost"\npath = "/nonexistent/devinit-program"\n'
    projects.create("broken", text, ["b"])

    result = runner.invoke(app, ["run", "b"])

    assert result.exit_code == 1
    assert "Launch failed: Program 0 (ghost) failed to launch" in result.output


def test_remove_by_alias_targets_alias_owner(devinit_home):
    projects.add("api", "")
    alias_owner = projects.create("other", "", ["api"])

    result = runner.invoke(app, ["remove", "api", "--yes"])

    assert result.exit_code == 0, result.output
    assert [p.name for p in projects.get_all()] == ["api"]
    assert alias_owner not in [p.id for p in projects.get_all()]


def test_view_and_add_alias_agree_on_target(devinit_home):
    projects.add("api", "")
    alias_owner = projects.create("other", "", ["api"])

    runner.invoke(app, ["add", "--alias", "x", "--to", "api"])
    result = runner.invoke(app, ["view", "api"])

    assert aliases.resolve("x") == alias_owner
    assert "Project Name: other" in result.output


@patch("devinit.cli.commands.projects.get_all")
def test_store_error_is_reported_without_traceback(mock_get_all, devinit_home):
    mock_get_all.side_effect = sqlite3.OperationalError("database is locked")

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 1
    assert "Store error: database is locked" in result.output
