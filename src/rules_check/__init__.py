"""Check a codebase against a directory of Markdown convention rules."""

__version__ = "0.1.0"
