"""btshell - interactive shell for wide-column tables."""

__version__ = "0.1.0"
