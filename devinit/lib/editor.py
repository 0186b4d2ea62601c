"""Text-editing collaborator: hand text to an external editor and read it back."""

import logging

import click

from devinit.errors import EditorError

logger = logging.getLogger(__name__)


def edit(initial_text: str, editor: str | None = None) -> str:
    """Open initial_text in an editor and return what the user saved.

    editor is a command line such as "nvim" or "code --wait". When None,
    click falls back to $VISUAL, $EDITOR and then a platform default.
    Quitting without saving returns the text unchanged.
    """
    logger.debug(f"Opening editor {editor or '(default)'}")
    try:
        text = click.edit(initial_text, editor=editor, extension=".toml", require_save=False)
    except click.ClickException as e:
        raise EditorError(e.format_message()) from e
    return initial_text if text is None else text
