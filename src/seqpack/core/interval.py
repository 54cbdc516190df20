"""Half-open sequence intervals, used as slice coordinates and as search results."""
from typing import Union, Any, ClassVar, Final
from enum import IntEnum

import numpy as np


# Classes --------------------------------------------------------------------------------------------------------------
class Strand(IntEnum):
    """
    Enumeration for sequence strands.
    """
    FORWARD = 1
    REVERSE = -1
    UNSTRANDED = 0
    _STR_CACHE: ClassVar[dict]
    _FROM_BYTES_CACHE: ClassVar[dict]

    def __str__(self): return self._STR_CACHE[self]

    @classmethod
    def from_bytes(cls, b: bytes) -> 'Strand':
        return cls._FROM_BYTES_CACHE.get(b, cls.UNSTRANDED)

    @classmethod
    def from_symbol(cls, s: Any) -> 'Strand':
        if s is None: return cls.UNSTRANDED
        if isinstance(s, cls): return s
        if isinstance(s, (int, np.integer)):
            try: return cls(int(s))
            except ValueError: return cls.UNSTRANDED
        if isinstance(s, bytes): return cls.from_bytes(s)
        if isinstance(s, str): return cls.from_bytes(s.encode('ascii'))
        return cls.UNSTRANDED

    @classmethod
    def _init_caches(cls):
        cls._STR_CACHE = {cls.FORWARD: '+', cls.REVERSE: '-', cls.UNSTRANDED: '.'}
        cls._FROM_BYTES_CACHE = {b'+': cls.FORWARD, b'-': cls.REVERSE, b'.': cls.UNSTRANDED}


Strand._init_caches()


class Interval:
    """
    Immutable interval. Safe for hashing and use in sets/dicts.

    Search functions return an ``Interval`` for a hit and the ``NOT_FOUND``
    sentinel (``Interval(-1, -1)``) otherwise. An empty query matches as the
    empty interval at the search origin, which is distinct from ``NOT_FOUND``.

    Attributes:
        start: The start position (0-based, inclusive).
        end: The end position (0-based, exclusive).
        strand: The strand (FORWARD, REVERSE, or UNSTRANDED).

    Examples:
        >>> Interval(2, 5)
        2:5(.)
        >>> len(Interval(2, 5))
        3
    """
    __slots__ = ('_start', '_end', '_strand')

    def __init__(self, start: int, end: int, strand: Any = None):
        self._start: int = int(start)
        self._end: int = int(end)
        self._strand: Strand = Strand.from_symbol(strand)

    @property
    def start(self) -> int: return self._start
    @property
    def end(self) -> int: return self._end
    @property
    def strand(self) -> Strand: return self._strand
    @property
    def found(self) -> bool:
        """``False`` only for the not-found sentinel."""
        return self._start >= 0
    def __hash__(self): return hash((self._start, self._end, self._strand))
    def __repr__(self): return f"{self._start}:{self._end}({self._strand})"
    def __len__(self): return max(0, self._end - self._start)
    def __iter__(self): return iter((self._start, self._end, self._strand))

    def __eq__(self, other):
        if not isinstance(other, Interval): return False
        return (self._start == other._start and
                self._end == other._end and
                self._strand == other._strand)

    def __contains__(self, item: Union[slice, int, 'Interval']):
        if isinstance(item, (int, np.integer)): return self._start <= item < self._end
        item = Interval.from_item(item)
        return self._start <= item.start and self._end >= item.end

    def to_slice(self) -> slice:
        """Returns the equivalent Python slice (strand is dropped)."""
        return slice(self._start, self._end)

    def to_range(self) -> range:
        """Returns the covered positions as a ``range``."""
        return range(self._start, self._end)

    def shift(self, x: int, y: int = None) -> 'Interval':
        """
        Shifts the interval coordinates.

        Args:
            x: Amount to shift start (and end if y is None).
            y: Amount to shift end (optional).

        Returns:
            A new shifted Interval.
        """
        return Interval(self._start + x, self._end + (y if y is not None else x), self._strand)

    def reverse_complement(self, length: int) -> 'Interval':
        """
        Returns the interval coordinates on the opposite strand of a parent of the given length.
        """
        return Interval(length - self._end, length - self._start, self._strand * -1)

    @classmethod
    def from_int(cls, item: int, strand: int = Strand.UNSTRANDED, length: int = None) -> 'Interval':
        """Creates an interval from a single integer index (negative indices need ``length``)."""
        if item < 0 and length is not None: item += length
        return cls(item, item + 1, strand)

    @classmethod
    def from_slice(cls, item: slice, strand: int = Strand.UNSTRANDED, length: int = None) -> 'Interval':
        """Creates an interval from a unit-step slice, resolving ``None`` and negative bounds against ``length``.

        Raises:
            ValueError: If the slice has a step other than 1, or an open stop and no ``length``.
        """
        if item.step not in (None, 1): raise ValueError("Only unit-step slices map to an Interval")
        start, stop = item.start, item.stop
        if start is None: start = 0
        if stop is None and length is not None: stop = length
        if stop is None: raise ValueError("Cannot create Interval from slice with None stop without 'length'")
        if length is not None:
            if start < 0: start += length
            if stop < 0: stop += length
        return cls(start, stop, strand)

    @classmethod
    def from_item(cls, item: Union[slice, int, 'Interval'], strand: int = Strand.UNSTRANDED,
                  length: int = None) -> 'Interval':
        """
        Coerces various types into an Interval.

        Args:
            item: The item to coerce (slice, int, Interval).
            strand: Default strand if not present in item.
            length: Length of the sequence (needed for slices with a None stop and negative bounds).

        Returns:
            An Interval object.

        Raises:
            TypeError: If coercion is not possible.
        """
        if isinstance(item, cls): return item
        if isinstance(item, (int, np.integer)): return cls.from_int(int(item), strand, length)
        if isinstance(item, slice): return cls.from_slice(item, strand, length)
        raise TypeError(f"Cannot coerce {type(item)} to Interval")


# Constants ------------------------------------------------------------------------------------------------------------
NOT_FOUND: Final = Interval(-1, -1)
