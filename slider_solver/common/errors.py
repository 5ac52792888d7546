"""
Exception types raised by the slider solver.

Vision errors usually mean the canvases were captured mid-render, so the
orchestrator treats them as "recapture and retry". Decode and dimension errors
point at bad input and are not retried.
"""


class SliderSolverError(Exception):
    """Base class for every error raised by the solver"""


class DecodeError(SliderSolverError):
    """The image buffer is malformed or in an unsupported format"""


class DimensionMismatchError(SliderSolverError):

    def __init__(self, first_size, second_size):
        self.first_size = first_size
        self.second_size = second_size
        super().__init__(f"Image sizes do not match: {first_size[0]}x{first_size[1]} vs {second_size[0]}x{second_size[1]}")


class VisionError(SliderSolverError):
    """The vision pipeline could not find a usable shape"""


class NoRegionFoundError(VisionError):
    pass


class DegenerateRegionError(VisionError):
    pass


class VerificationTimeoutError(SliderSolverError):

    def __init__(self, selector: str, timeout: float):
        self.selector = selector
        self.timeout = timeout
        super().__init__(f"Success indicator '{selector}' did not appear within {timeout:.1f}s")
