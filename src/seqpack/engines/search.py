"""
Exact, ambiguity-aware sequence search.

A query matches wherever each of its symbols is *compatible* with the aligned text symbol, so
``N`` in either the query or the text matches any base. Searches run a Boyer-Moore-Horspool
scan whose shift tables are built from the alphabet's compatibility matrix.
"""
from typing import Union
import logging

import numpy as np

from seqpack.core.alphabet import Alphabet
from seqpack.core.interval import Interval, NOT_FOUND
from seqpack.containers.seq import RangeError
from seqpack.lib.protocols import HasEncoded
from seqpack.lib.resources import jit


log = logging.getLogger(__name__)


# Helpers --------------------------------------------------------------------------------------------------------------
def _text_codes(text: HasEncoded) -> tuple[np.ndarray, Alphabet]:
    if (alphabet := getattr(text, 'alphabet', None)) is None or not hasattr(type(text), 'encoded'):
        raise TypeError(f"Search text must be a Seq or Kmer, not {type(text).__name__}")
    return text.encoded, alphabet


def _query_codes(query, alphabet: Alphabet) -> np.ndarray:
    if isinstance(query, (int, np.integer)): return np.array([alphabet._code(query)], dtype=np.uint8)
    return alphabet.codes_from(query)


def _origin(start: int, length: int) -> int:
    if not 0 <= start <= length: raise RangeError(start, length)
    return start


# Classes --------------------------------------------------------------------------------------------------------------
class ExactSearchQuery:
    """
    A reusable exact-search query.

    The query is compiled once per text alphabet (codes plus forward and reverse shift tables)
    and cached, so repeated searches skip preprocessing.

    Args:
        query: A ``Seq``, ``Kmer``, text, or a single symbol.
        alphabet: The alphabet to interpret text queries in (inferred for ``Seq`` and ``Kmer``).

    Examples:
        >>> q = ExactSearchQuery('AGC')
        >>> q.search(Alphabet.DNA.seq_from('ACAGCGTAGCT'))
        2:5(.)
        >>> q.rsearch(Alphabet.DNA.seq_from('ACAGCGTAGCT'))
        7:10(.)
    """
    __slots__ = ('_query', '_compiled')

    def __init__(self, query, alphabet: Alphabet = None):
        self._query = query
        self._compiled: dict[Alphabet, tuple[np.ndarray, np.ndarray, np.ndarray]] = {}
        if alphabet is not None: self._compile(alphabet)
        elif getattr(query, 'alphabet', None) is not None: self._compile(query.alphabet)

    def __repr__(self): return f"ExactSearchQuery({self._query!r})"

    def _compile(self, alphabet: Alphabet) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        if (compiled := self._compiled.get(alphabet)) is not None: return compiled
        codes = _query_codes(self._query, alphabet)
        compat, m = alphabet.compatibility, len(codes)
        shift = np.full(len(alphabet), max(m, 1), dtype=np.int64)
        for j in range(m - 1): shift[compat[:, codes[j]]] = m - 1 - j
        rshift = np.full(len(alphabet), max(m, 1), dtype=np.int64)
        for j in range(m - 1, 0, -1): rshift[compat[:, codes[j]]] = j
        log.debug('Compiled %d-symbol exact query for %s', m, alphabet)
        self._compiled[alphabet] = compiled = (codes, shift, rshift)
        return compiled

    def search(self, text: HasEncoded, start: int = 0) -> Interval:
        """Finds the first occurrence starting at or after ``start``.

        Returns:
            The matching ``Interval``, or ``NOT_FOUND``. An empty query matches at ``start``.

        Raises:
            RangeError: If ``start`` is outside ``[0, len(text)]``.
        """
        codes, alphabet = _text_codes(text)
        start = _origin(start, len(codes))
        query, shift, _ = self._compile(alphabet)
        if len(query) == 0: return Interval(start, start)
        i = _exact_forward_kernel(codes, query, alphabet.compatibility, shift, start)
        return NOT_FOUND if i < 0 else Interval(i, i + len(query))

    def rsearch(self, text: HasEncoded, stop: int = None) -> Interval:
        """Finds the last occurrence ending at or before ``stop`` (default: the end of the text).

        Returns:
            The matching ``Interval``, or ``NOT_FOUND``. An empty query matches at ``stop``.

        Raises:
            RangeError: If ``stop`` is outside ``[0, len(text)]``.
        """
        codes, alphabet = _text_codes(text)
        stop = _origin(len(codes) if stop is None else stop, len(codes))
        query, _, rshift = self._compile(alphabet)
        if len(query) == 0: return Interval(stop, stop)
        i = _exact_reverse_kernel(codes, query, alphabet.compatibility, rshift, stop)
        return NOT_FOUND if i < 0 else Interval(i, i + len(query))


# Functions ------------------------------------------------------------------------------------------------------------
def _as_query(query) -> ExactSearchQuery:
    return query if isinstance(query, ExactSearchQuery) else ExactSearchQuery(query)


def search(text: HasEncoded, query: Union[ExactSearchQuery, HasEncoded, str, bytes], start: int = 0) -> Interval:
    """
    Finds the first occurrence of ``query`` in ``text`` starting at or after ``start``.

    Args:
        text: The sequence to search.
        query: A prepared ``ExactSearchQuery``, a sequence, text, or a single symbol.
        start: The position to start searching from.

    Returns:
        The matching ``Interval``, or ``NOT_FOUND``.

    Examples:
        >>> search(Alphabet.DNA.seq_from('ACAGCGTAGCT'), 'G')
        3:4(.)
    """
    return _as_query(query).search(text, start)


def rsearch(text: HasEncoded, query, stop: int = None) -> Interval:
    """Finds the last occurrence of ``query`` in ``text`` ending at or before ``stop``."""
    return _as_query(query).rsearch(text, stop)


def search_index(text: HasEncoded, query, start: int = 0) -> int:
    """Returns the start of the first occurrence, or -1."""
    return search(text, query, start).start


def rsearch_index(text: HasEncoded, query, stop: int = None) -> int:
    """Returns the start of the last occurrence, or -1."""
    return rsearch(text, query, stop).start


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _exact_forward_kernel(text, query, compat, shift, start):
    n, m = len(text), len(query)
    i = start
    while i + m <= n:
        j = m - 1
        while j >= 0 and compat[text[i + j], query[j]]: j -= 1
        if j < 0: return i
        i += shift[text[i + m - 1]]
    return -1


@jit(nopython=True, cache=True, nogil=True)
def _exact_reverse_kernel(text, query, compat, rshift, stop):
    m = len(query)
    i = stop - m
    while i >= 0:
        j = 0
        while j < m and compat[text[i + j], query[j]]: j += 1
        if j == m: return i
        i -= rshift[text[i]]
    return -1
