# modresolve/__init__.py
"""Resolve Python import references to the files, packages and names they denote."""

__version__ = "0.1.0"
