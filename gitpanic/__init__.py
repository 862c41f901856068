"""GitPanic - guided, undoable recovery from common Git mistakes."""

__version__ = "0.1.0"
