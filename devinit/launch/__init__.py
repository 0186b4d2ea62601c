from devinit.launch.engine import LaunchedProgram, Launcher, LaunchState, launch
from devinit.launch.manifest import TEMPLATE, Manifest, OutputMode, Program, decode

__all__ = [
    "launch",
    "Launcher",
    "LaunchState",
    "LaunchedProgram",
    "decode",
    "Manifest",
    "Program",
    "OutputMode",
    "TEMPLATE",
]
