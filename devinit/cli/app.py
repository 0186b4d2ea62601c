import logging
import shlex
import shutil

import click
import typer
from typer.core import TyperGroup

from devinit import config
from devinit.cli import commands
from devinit.cli.errors import error_feedback
from devinit.errors import DecodeError, NotFoundError
from devinit.launch import manifest
from devinit.lib import editor
from devinit.registry import aliases, projects, settings


class LaunchGroup(TyperGroup):
    """Typer group that launches a project when the command name is an alias."""

    def get_command(self, ctx, cmd_name):
        """Get command by name, or launch the project it names."""
        cmd = super().get_command(ctx, cmd_name)
        if cmd is not None:
            return cmd

        try:
            aliases.resolve(cmd_name)
        except NotFoundError:
            return None

        @click.command(name=cmd_name, help=f"Launch project {cmd_name}.")
        @error_feedback
        def launch_project():
            commands.execute(commands.Launch(cmd_name))

        return launch_project


app = typer.Typer(
    invoke_without_command=True,
    no_args_is_help=False,
    cls=LaunchGroup,
    add_completion=False,
    help="A tool to help initialize your development!",
)


@app.callback(invoke_without_command=True)
@error_feedback
def common_options_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output."),
):
    """Launch a project by name or alias, or manage the project registry."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level(),
        format="[devinit] %(levelname)s %(message)s",
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _split_aliases(text: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in text.split(",") if part.strip())


def _compose_manifest(initial: str) -> str:
    """Loop the editor until the text decodes as a manifest."""
    text = initial
    while True:
        text = editor.edit(text, editor=config.editor())
        try:
            manifest.decode(text)
            return text
        except DecodeError as e:
            typer.echo(str(e), err=True)
            if not typer.confirm("Edit again?", default=True):
                raise typer.Abort() from e


@app.command("run")
@error_feedback
def run(name: str = typer.Argument(..., help="Project name or alias.")):
    """Launch every program in a project's manifest."""
    commands.execute(commands.Launch(name))


@app.command("add")
@error_feedback
def add(
    name: str = typer.Argument(None, help="Name of the new project."),
    project: str = typer.Option(None, "--project", help="Name of the new project."),
    alias: str = typer.Option(None, "--alias", help="Add this alias to an existing project."),
    to: str = typer.Option(None, "--to", help="Project that receives --alias."),
    alias_list: str = typer.Option(
        None, "--aliases", help="Comma-separated aliases for the new project."
    ),
):
    """Add a project, or an alias to an existing project."""
    if alias:
        if name or project:
            raise typer.BadParameter("--alias cannot be combined with a project name")
        target = to or typer.prompt("Enter the name or an alias of a project")
        commands.execute(commands.AddAlias(alias, target))
        return

    project_name = project or name
    if not project_name:
        raise typer.BadParameter("No project name or alias provided.")

    typer.echo(f"Adding project {project_name}")
    text = _compose_manifest(manifest.TEMPLATE)

    if alias_list is not None:
        names = _split_aliases(alias_list)
    elif typer.confirm("Would you like to add aliases?", default=False):
        names = _split_aliases(
            typer.prompt("Enter aliases separated by commas e.g. <alias1>, <alias2>, ...")
        )
    else:
        names = ()

    commands.execute(commands.AddProject(project_name, text, names))


@app.command("remove")
@error_feedback
def remove(
    name: str = typer.Argument(None, help="Project name or alias to remove."),
    project: str = typer.Option(None, "--project", help="Project name or alias to remove."),
    alias: str = typer.Option(None, "--alias", help="Alias to remove."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    """Remove a project (with all its aliases) or a single alias."""
    if alias:
        if yes or typer.confirm(f"Are you sure you want to delete alias {alias}?"):
            commands.execute(commands.RemoveAlias(alias))
        return

    target = project or name
    if not target:
        raise typer.BadParameter("No project name or alias provided.")
    if yes or typer.confirm(f"Are you sure you want to delete project {target}?"):
        commands.execute(commands.RemoveProject(target))


@app.command("view")
@error_feedback
def view(name: str = typer.Argument(..., help="Project name or alias.")):
    """Show a project's aliases and manifest."""
    commands.execute(commands.View(name))


@app.command("list")
@error_feedback
def list_projects(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """List all projects and their aliases."""
    commands.execute(commands.ListProjects(json_output))


@app.command("edit")
@error_feedback
def edit(name: str = typer.Argument(..., help="Project name or alias.")):
    """Edit a project's manifest."""
    current = projects.get([name])
    text = _compose_manifest(current.manifest)
    commands.execute(commands.EditManifest(name, text))


@app.command("set")
@error_feedback
def set_option(
    option: str = typer.Argument(..., help="use_session_wrapper (alias: uwsm) or editor."),
    value: str = typer.Argument(None, help="New value; flags toggle when omitted."),
):
    """Change a devinit setting."""
    if option == "editor":
        if not value:
            raise typer.BadParameter("No editor specified")
        program, *rest = shlex.split(value)
        resolved = shutil.which(program)
        if resolved is None:
            raise ValueError(f"Editor '{program}' not found")
        commands.execute(commands.SetEditor(shlex.join([resolved, *rest])))
        return

    flag_value = settings.parse_bool(value) if value is not None else None
    commands.execute(commands.SetFlag(option, flag_value))


def main() -> None:
    """Entry point for devinit command."""
    app()
