import os
from pathlib import Path

import typer

APP_NAME = "devinit"
DB_FILE = "devinit.db"


def data_dir() -> Path:
    override = os.environ.get("DEVINIT_HOME")
    if override:
        return Path(override).expanduser()
    return Path(typer.get_app_dir(APP_NAME))


def db_path() -> Path:
    return data_dir() / DB_FILE


def config_file() -> Path:
    return data_dir() / "config.yaml"


def logs_dir() -> Path:
    return data_dir() / "logs"
