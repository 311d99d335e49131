"""tasknest: nested workspaces and tasks in the terminal."""

__version__ = "0.3.0"
