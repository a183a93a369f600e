"""framecert - frame timing sampling and rendering performance certification."""

__version__ = "0.1.0"
