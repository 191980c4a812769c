# utils/_requires.py
"""Wrapper for methods that require an attribute to be initialized."""

__all__ = [
    "requires",
]

import functools


def requires(attr: str, message: str = None) -> callable:
    """Wrapper for methods that require an attribute to be initialized.

    Parameters
    ----------
    attr : str
        Name of the required attribute.
    message : str or None
        Message in the error. Defaults to
        ``"required attribute '<attr>' not set"``.

    Examples
    --------
    >>> class Recorder:
    ...     def __init__(self):
    ...         self.time = None
    ...     @requires("time", "no time recorded")
    ...     def elapsed(self, t):
    ...         return t - self.time
    >>> Recorder().elapsed(2)
    AttributeError: no time recorded
    """
    if message is None:
        message = f"required attribute '{attr}' not set"

    def _wrapper(func):
        @functools.wraps(func)
        def _decorator(self, *args, **kwargs):
            if getattr(self, attr, None) is None:
                raise AttributeError(message)
            return func(self, *args, **kwargs)

        return _decorator

    return _wrapper
