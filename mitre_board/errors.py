"""
Board Exceptions
================

Fatal startup conditions are raised as subclasses of BoardError so the entry
point can report them and exit without ever serving partially built data.
Recoverable per-file problems never use these classes; they are logged and skipped.
"""


class BoardError(Exception):
    """Base class for all fatal board errors."""


class ConfigurationError(BoardError):
    """A required path or command line option is missing or invalid."""


class TaxonomyLoadError(BoardError):
    """The ATT&CK taxonomy could not be fetched or parsed."""
