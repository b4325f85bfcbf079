"""
Precondition and persistence exceptions for LayerKit.

This module defines the error types raised by the node core. Precondition
violations are fatal for the operation that detects them: nothing is retried
and no partial result is returned. Errors raised by external collaborators
(file system, JSON decoding) are not wrapped and reach the caller unchanged.
"""


class PreconditionViolationError(RuntimeError):
    """
    Base class for violated operation preconditions.

    Raised when a caller hands an operation inputs it is not defined for,
    e.g. an empty parameter sequence or a strided tensor passed to the
    flattener.
    """


class EmptyParameterListError(PreconditionViolationError):
    """
    Raised when a parameter sequence with no tensors is flattened.

    This also covers `Module.get_parameters()` on a module that has no
    learnable parameters at all.
    """

    def __init__(self, what: str = "parameter sequence") -> None:
        """
        Initialize the EmptyParameterListError.

        Parameters
        ----------
        what : str, optional
            Description of the empty input, used in the message.
        """
        super().__init__(f"Cannot flatten an empty {what}.")
        self.what = what


class NonContiguousTensorError(PreconditionViolationError):
    """
    Raised when a non-contiguous tensor reaches the repack path of `flatten`.

    Attributes
    ----------
    index : int
        Position of the offending tensor in the input sequence.
    sizes : tuple[int, ...]
        Sizes of the offending tensor.
    strides : tuple[int, ...]
        Strides of the offending tensor.
    """

    def __init__(self, index: int, sizes: tuple, strides: tuple) -> None:
        super().__init__(
            f"Tensor at index {index} is not contiguous "
            f"(sizes={tuple(sizes)}, strides={tuple(strides)})."
        )
        self.index = index
        self.sizes = tuple(sizes)
        self.strides = tuple(strides)


class DTypeMismatchError(PreconditionViolationError):
    """
    Raised when tensors of different scalar types are merged into one storage.
    """

    def __init__(self, expected: str, got: str, index: int) -> None:
        super().__init__(
            f"Tensor at index {index} has dtype '{got}', expected '{expected}'."
        )
        self.expected = expected
        self.got = got
        self.index = index


class UnsupportedDTypeError(TypeError):
    """
    Raised when a storage or module is created with a scalar type other than
    float32 or float64.
    """

    def __init__(self, dtype: str) -> None:
        super().__init__(
            f"Unsupported scalar type '{dtype}'. Expected float32 or float64."
        )
        self.dtype = dtype


class CheckpointFormatError(ValueError):
    """
    Raised when a checkpoint file does not carry a known format tag.
    """

    def __init__(self, fmt: object) -> None:
        super().__init__(f"Unsupported checkpoint format: {fmt!r}")
        self.fmt = fmt
