"""Launch developer workspaces by name."""

__version__ = "0.3.0"
