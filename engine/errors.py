"""Exception types raised inside the engine."""


class MaidrError(Exception):
    """Base class for engine errors."""


class SpecificationError(MaidrError):
    """A layer lacks a binding its geometry or position policy requires.

    Degrades that single layer to an unknown result.
    """

    def __init__(self, message: str, layer_index: int | None = None, binding: str | None = None):
        super().__init__(message)
        self.layer_index = layer_index
        self.binding = binding


class PanelMismatchError(MaidrError):
    """Logical panels cannot be aligned with the rendered panels."""

    def __init__(self, message: str, expected: int = 0, found: int = 0):
        super().__init__(message)
        self.expected = expected
        self.found = found
