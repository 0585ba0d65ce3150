"""Exceptions raised while converting or generating G-code programs."""


class ProcessingError(Exception):
    """Base class for every rejected conversion or output step."""

    pass


class WrongUnitsError(ProcessingError):
    """Input program is declared in inches (``G20``)."""

    pass


class AlreadyProcessedError(ProcessingError):
    """Input program already starts with the post-processor marker."""

    pass


class UnrecognizedUnitsError(ProcessingError):
    """First line of the input is neither a units command nor the marker."""

    pass


class SaveCancelledError(ProcessingError):
    """Operator declined to choose a destination for an output file."""

    pass


class GCodeError(ProcessingError):
    """Raised when G-code generation fails due to invalid input."""

    pass
