"""Error taxonomy for record decoding, reprojection and stream usage."""


class ShapefileLambertError(Exception):
    """Base class for all errors raised by this package."""


class ShapefileFormatError(ShapefileLambertError):
    """The byte stream does not hold the data a record declares."""


class ConversionError(ShapefileLambertError):
    """A coordinate conversion could not complete.

    Conversion errors are fatal to the current operation: the record reader
    lets them propagate instead of storing them on the record.
    """


class ConvergenceError(ConversionError):
    """An iterative solver hit its iteration cap before reaching tolerance."""

    def __init__(self, stage: str, iterations: int, last_step: float):
        self.stage = stage
        self.iterations = iterations
        self.last_step = last_step
        super().__init__(
            f"{stage} did not converge after {iterations} iterations (last step {last_step:.3e})"
        )


class ConversionCancelled(ConversionError):
    """A batch conversion was stopped through its cancellation token."""


class UnknownProfileError(ShapefileLambertError, KeyError):
    """A projection profile name is not in the preset table."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown projection profile: {self.name!r}"


class StreamClosedError(ShapefileLambertError):
    """A feature stream was used after it reached end of data or was closed."""
