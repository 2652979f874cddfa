"""
@file errors.py
@brief Exception hierarchy for the dependency check

@details
Every failure raised by this package derives from NvdCheckError so the CLI
can report it and exit with EXIT_ERROR. "Vulnerabilities found" is not an
error and has no exception.
"""


class NvdCheckError(Exception):
    """Base class for all dependency check failures."""


class ConfigError(NvdCheckError):
    """Configuration document is unreadable or holds values of the wrong type."""


class ParseError(ConfigError):
    """Configuration document is not a JSON object."""


class EngineCreationError(NvdCheckError):
    """The analysis engine could not be instantiated."""


class AnalysisError(NvdCheckError):
    """An analyzer failed while scanning or analyzing dependencies."""


class UpdateError(NvdCheckError):
    """The remote vulnerability feed could not be synchronized."""


class ReportError(NvdCheckError):
    """Reports could not be written (bad format, unwritable directory)."""


class StoreAccessError(NvdCheckError):
    """The local vulnerability store could not be accessed or removed."""
