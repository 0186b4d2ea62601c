"""Launch engine: spawn every program of a manifest and leave it running."""

import contextlib
import logging
import os
import re
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO

from devinit.errors import LaunchError
from devinit.launch.manifest import Manifest, OutputMode, Program
from devinit.lib import paths
from devinit.registry import settings as settings_store
from devinit.registry.models import Settings

logger = logging.getLogger(__name__)

SESSION_WRAPPER = ("uwsm", "app", "--")


class LaunchState(str, Enum):
    DECODED = "decoded"
    LAUNCHING = "launching"
    DONE = "done"
    FAILED = "failed"


@dataclass
class LaunchPlan:
    index: int
    program: Program
    command: list[str]
    env: dict[str, str]
    cwd: str | None
    log_path: Path | None = None


@dataclass
class LaunchedProgram:
    index: int
    name: str
    process: subprocess.Popen = field(repr=False)

    @property
    def pid(self) -> int:
        return self.process.pid


def build_command(program: Program, settings: Settings) -> list[str]:
    command = [program.path, *program.args]
    if settings.use_session_wrapper:
        return [*SESSION_WRAPPER, *command]
    return command


def build_env(program: Program) -> dict[str, str]:
    """Inherited environment with the program's overrides layered on top."""
    env = os.environ.copy()
    env.update(program.env)
    return env


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "-", text).strip("-") or "program"


def log_path_for(label: str, index: int, program: Program) -> Path:
    name = _slug(program.name or Path(program.path).name)
    return paths.logs_dir() / f"{_slug(label)}-{index}-{name}.log"


class Launcher:
    """Runs one decoded manifest: Decoded -> Launching(i) -> Done | Failed.

    Programs are started in manifest order and never waited on. The first
    program that fails to start stops the sequence; programs already
    running are left alone.
    """

    def __init__(
        self, manifest: Manifest, settings: Settings | None = None, label: str = "devinit"
    ):
        self.manifest = manifest
        self.settings = settings
        self.label = label
        self.index: int | None = None
        self.launched: list[LaunchedProgram] = []
        self.state = LaunchState.DECODED

    def _resolve_settings(self) -> Settings:
        # One snapshot per launch so every program sees the same defaults.
        if self.settings is None:
            self.settings = settings_store.get()
        return self.settings

    def plan(self) -> list[LaunchPlan]:
        """Resolve every command line, environment and sink before spawning."""
        needs_defaults = any(p.settings is None for p in self.manifest.programs)
        defaults = self._resolve_settings() if needs_defaults else None

        plans = []
        for index, program in enumerate(self.manifest.programs):
            effective = program.settings or defaults
            cwd = None
            if program.working_directory:
                cwd = os.path.expanduser(program.working_directory)
            log_path = None
            if program.output_mode is OutputMode.LOG:
                log_path = log_path_for(self.label, index, program)
            plans.append(
                LaunchPlan(
                    index=index,
                    program=program,
                    command=build_command(program, effective),
                    env=build_env(program),
                    cwd=cwd,
                    log_path=log_path,
                )
            )
        return plans

    def run(self) -> list[LaunchedProgram]:
        if self.state is not LaunchState.DECODED:
            raise RuntimeError(f"Launcher already ran (state: {self.state.value})")

        plans = self.plan()
        for plan in plans:
            self.state = LaunchState.LAUNCHING
            self.index = plan.index
            try:
                launched = self._spawn(plan)
                self.launched.append(launched)
                self._feed(launched.process, plan.program.commands)
            except (OSError, ValueError) as e:
                # ValueError: Popen rejects NUL bytes in the command line or env.
                self.state = LaunchState.FAILED
                logger.error(f"Program {plan.index} ({plan.program.name}) failed to launch: {e}")
                raise LaunchError(plan.index, plan.program.name, str(e)) from e

        self.state = LaunchState.DONE
        return self.launched

    def _spawn(self, plan: LaunchPlan) -> LaunchedProgram:
        program = plan.program
        sink: IO | None = None
        if program.output_mode is OutputMode.NULL:
            stdout, stderr = subprocess.DEVNULL, subprocess.DEVNULL
        elif program.output_mode is OutputMode.LOG:
            plan.log_path.parent.mkdir(parents=True, exist_ok=True)
            sink = open(plan.log_path, "ab")
            stdout, stderr = sink, subprocess.STDOUT
        else:
            stdout, stderr = None, None

        try:
            proc = subprocess.Popen(
                plan.command,
                cwd=plan.cwd,
                env=plan.env,
                stdin=subprocess.PIPE,
                stdout=stdout,
                stderr=stderr,
                text=True,
                start_new_session=True,
            )
        finally:
            if sink is not None:
                sink.close()

        logger.info(f"Launched {program.name or program.path} (pid {proc.pid}): {plan.command}")
        return LaunchedProgram(index=plan.index, name=program.name, process=proc)

    def _feed(self, proc: subprocess.Popen, commands: list[str]) -> None:
        """Write each command as a line on stdin, then close it.

        The process is already in self.launched, so a failed write still
        leaves it visible to the caller.
        """
        try:
            for command in commands:
                proc.stdin.write(command + "\n")
                proc.stdin.flush()
        finally:
            with contextlib.suppress(BrokenPipeError):
                proc.stdin.close()


def launch(
    manifest: Manifest, settings: Settings | None = None, label: str = "devinit"
) -> list[LaunchedProgram]:
    return Launcher(manifest, settings=settings, label=label).run()
