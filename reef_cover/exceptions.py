"""
Error and warning types raised by the benthic cover pipeline.

Errors stop a run; warnings flag data-quality problems that the run
reports but survives.
"""


class SchemaError(ValueError):
    """Raised when a table is missing columns a stage requires."""

    def __init__(self, missing, table='table'):
        self.missing = list(missing)
        super().__init__(
            f"{table} is missing required column(s): {', '.join(self.missing)}"
        )


class DuplicateLabelError(ValueError):
    """Raised when the label map lists the same code more than once."""

    def __init__(self, codes):
        self.codes = list(codes)
        super().__init__(
            f"Label map has duplicate code(s): {', '.join(map(str, self.codes))}"
        )


class UnmappedCodeWarning(UserWarning):
    """Classification codes with no label map entry."""


class IncompleteContextWarning(UserWarning):
    """Contexts with no observed tally, whose TOTAL cannot be recovered."""
