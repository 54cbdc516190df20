from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class HasAlphabet(Protocol):
    """Protocol for objects that possess an Alphabet."""
    @property
    def alphabet(self) -> 'Alphabet': ...


@runtime_checkable
class HasEncoded(Protocol):
    """Protocol for symbol containers that expose their codes (e.g. Seq, Kmer)."""
    @property
    def alphabet(self) -> 'Alphabet': ...
    @property
    def encoded(self) -> np.ndarray: ...
    def __len__(self) -> int: ...
