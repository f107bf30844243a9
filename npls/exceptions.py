"""
Contains the exceptions raised by the N-PLS implementation.
"""


class InvalidInputError(ValueError):
    """
    Raised when input arrays have the wrong number of modes, a zero-sized dimension, or
    a shape that is incompatible with the fitted model.
    """


class FittingError(RuntimeError):
    """
    Raised when fitting cannot be completed. No partially fitted model is exposed.
    """


class OrthogonalityError(FittingError):
    """
    Raised when an extracted weight vector does not have unit norm.
    """
