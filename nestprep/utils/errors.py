# errors.py
# Failure taxonomy for the DXF -> nesting conversion pipeline.
# Per-file failures carry the pipeline stage so the batch ledger can report {file, stage, message}.


class ConversionError(Exception):
    """Base class for per-file conversion failures."""

    stage = "conversion"

    def __init__(self, message, stage=None):
        super().__init__(message)
        if stage:
            self.stage = stage


class ParseFailure(ConversionError):
    """The source file could not be read or is not a valid DXF document."""

    stage = "parsing"


class ValidationFailure(ConversionError):
    """Geometry is structurally unusable (no supported entities, degenerate polygon)."""

    stage = "validation"
