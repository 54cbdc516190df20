"""
Process-wide resources and optional dependency management.
"""
from functools import cached_property, lru_cache
from importlib import import_module
from numpy.random import default_rng
import logging
import os
from typing import Callable, Optional


log = logging.getLogger(__name__)


# Classes --------------------------------------------------------------------------------------------------------------
class Resources:
    """
    Manages global resources like random number generators and optional dependencies.

    Settings are read from the environment once, on first access:

    * ``SEQPACK_SEED``: integer seed for the shared random number generator.
    """
    SEED_VARIABLE = 'SEQPACK_SEED'

    @cached_property
    def seed(self) -> Optional[int]:
        """Returns the configured random seed, or ``None`` for OS entropy."""
        if (value := os.environ.get(self.SEED_VARIABLE)) is None: return None
        try: return int(value)
        except ValueError:
            raise ValueError(f"{self.SEED_VARIABLE} must be an integer, got {value!r}") from None

    @cached_property
    def rng(self):
        """Returns the shared numpy random number generator."""
        return default_rng(self.seed)

    def reseed(self, seed: Optional[int] = None):
        """Replaces the shared generator with a freshly seeded one."""
        self.__dict__['rng'] = default_rng(seed)

    @staticmethod
    @lru_cache(maxsize=None)
    def has_module(module_name: str) -> bool:
        """Checks if a python package is installed."""
        try:
            import_module(module_name)
            return True
        except ImportError: return False


# Decorators -----------------------------------------------------------------------------------------------------------
def jit(signature_or_function=None, **options) -> Callable:
    """
    Conditional Numba JIT decorator.

    If 'numba' is installed (checked via RESOURCES), this applies `numba.jit`
    with the provided arguments. Otherwise, it returns the original function unmodified,
    ignoring any compilation options.

    Examples:
        >>> @jit  # Bare usage
        ... def func(): ...

        >>> @jit(nopython=True, cache=True)  # Configured usage
        ... def func(): ...
    """
    # 1. Fallback: Numba not installed
    if not RESOURCES.has_module('numba'):
        if callable(signature_or_function):
            log.debug('numba unavailable, %s runs as plain Python', signature_or_function.__name__)
            return signature_or_function  # Handle bare @jit
        def passthrough(func: Callable) -> Callable:
            log.debug('numba unavailable, %s runs as plain Python', func.__name__)
            return func  # Handle @jit(...)
        return passthrough
    # 2. Apply Numba
    from numba import jit as real_jit
    if callable(signature_or_function): return real_jit(signature_or_function)  # Handle bare @jit
    return real_jit(signature_or_function, **options)  # Handle @jit(...)


# Constants ------------------------------------------------------------------------------------------------------------
RESOURCES = Resources()
