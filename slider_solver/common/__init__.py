from .errors import (
    SliderSolverError,
    DecodeError,
    DimensionMismatchError,
    VisionError,
    NoRegionFoundError,
    DegenerateRegionError,
    VerificationTimeoutError
)

__all__ = [
    'SliderSolverError',
    'DecodeError',
    'DimensionMismatchError',
    'VisionError',
    'NoRegionFoundError',
    'DegenerateRegionError',
    'VerificationTimeoutError'
]
