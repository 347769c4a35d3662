"""Error taxonomy shared across the solver.

FatalInitError aborts startup; ConfigWarning is emitted through
``warnings.warn`` and never stops a frame.
"""


class FatalInitError(RuntimeError):
    """Grid or resource allocation is impossible (bad size, missing pass)."""


class BufferAliasError(RuntimeError):
    """A pass was asked to write into a buffer it also reads."""


class ConfigWarning(UserWarning):
    """Unknown parameter name or out-of-range value; previous value kept."""
