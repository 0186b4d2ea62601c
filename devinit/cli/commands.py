"""CLI operations as a closed set of typed commands.

Each subcommand parses its arguments (and runs any prompts) into one of the
dataclasses below, then hands it to execute(). Nothing in here prompts.
"""

import json
import logging
from dataclasses import dataclass

import typer

from devinit import config
from devinit.launch import engine, manifest
from devinit.registry import aliases, projects, settings
from devinit.registry.models import Project

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Launch:
    target: str


@dataclass(frozen=True)
class AddProject:
    name: str
    manifest: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class AddAlias:
    alias: str
    target: str


@dataclass(frozen=True)
class RemoveProject:
    target: str


@dataclass(frozen=True)
class RemoveAlias:
    alias: str


@dataclass(frozen=True)
class View:
    target: str


@dataclass(frozen=True)
class ListProjects:
    json_output: bool = False


@dataclass(frozen=True)
class SetFlag:
    option: str
    value: bool | None = None


@dataclass(frozen=True)
class SetEditor:
    command: str


@dataclass(frozen=True)
class EditManifest:
    target: str
    manifest: str


Command = (
    Launch
    | AddProject
    | AddAlias
    | RemoveProject
    | RemoveAlias
    | View
    | ListProjects
    | SetFlag
    | SetEditor
    | EditManifest
)


def _alias_text(project_id: int) -> str:
    names = [a.alias for a in aliases.for_project(project_id)]
    return ", ".join(names) if names else "None"


def _show(project: Project) -> None:
    typer.echo(f"Project Name: {project.name}")
    typer.echo(f"Aliases: {_alias_text(project.id)}")
    typer.echo(f"Manifest:\n{project.manifest}")


def _list(json_output: bool) -> None:
    all_projects = projects.get_all()
    by_project: dict[int, list[str]] = {}
    for alias in sorted(aliases.list_all(), key=lambda a: (not a.is_primary, a.alias)):
        by_project.setdefault(alias.project_id, []).append(alias.alias)

    if json_output:
        data = [
            {
                "id": p.id,
                "name": p.name,
                "aliases": by_project.get(p.id, []),
                "manifest": p.manifest,
            }
            for p in all_projects
        ]
        typer.echo(json.dumps(data, indent=2))
        return

    if not all_projects:
        typer.echo("No projects found.")
        return

    for p in all_projects:
        typer.echo(f"Project Name: {p.name}")
        typer.echo(f"Aliases: {', '.join(by_project.get(p.id, [])) or 'None'}")
        typer.echo(f"Manifest:\n{p.manifest}\n")


def _launch(target: str) -> None:
    project = projects.get([target])
    decoded = manifest.decode(project.manifest)
    if not decoded.programs:
        typer.echo(f"Project {project.name} has no programs to launch.")
        return
    label = aliases.primary(project.id) or project.name
    launched = engine.launch(decoded, label=label)
    for item in launched:
        typer.echo(f"Started {item.name or 'program'} (pid {item.pid})")


def execute(command: Command) -> None:
    match command:
        case Launch(target=target):
            _launch(target)
        case AddProject(name=name, manifest=text, aliases=names):
            projects.create(name, text, names)
            suffix = f" with aliases {', '.join(names)}" if names else ""
            typer.echo(f"Added project {name}{suffix}.")
        case AddAlias(alias=alias, target=target):
            aliases.add_secondary(aliases.resolve(target), alias)
            typer.echo(f"Added alias {alias} to {target}.")
        case RemoveProject(target=target):
            projects.remove(projects.get([target]).id)
            typer.echo(f"Removed project {target}.")
        case RemoveAlias(alias=alias):
            aliases.remove(alias)
            typer.echo(f"Removed alias {alias}.")
        case View(target=target):
            _show(projects.get([target]))
        case ListProjects(json_output=json_output):
            _list(json_output)
        case SetFlag(option=option, value=value):
            current = settings.set_flag(option, value)
            flag = settings.canonical_flag(option)
            typer.echo(f"{flag} = {str(getattr(current, flag)).lower()}")
        case SetEditor(command=editor_command):
            config.set_editor(editor_command)
            typer.echo(f"Default editor set to {editor_command}")
        case EditManifest(target=target, manifest=text):
            project = projects.get([target])
            projects.replace_manifest(project.id, text)
            typer.echo(f"Updated manifest for {project.name}.")
        case _:
            raise TypeError(f"Unhandled command: {command!r}")
