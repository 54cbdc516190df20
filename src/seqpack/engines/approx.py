"""
Approximate (edit distance) sequence search and pairwise distances.

A substring of the text matches a query within ``k`` errors if their Levenshtein distance,
counting compatible symbols as equal, is at most ``k``. Forward searches report the match with
the smallest end, then extend its start to the best-scoring (and, among equals, longest)
alignment; reverse searches mirror this from the right.

End positions are found with Myers' bit-parallel algorithm for queries of up to 62 symbols and
with a column-wise dynamic programme beyond that.
"""
from typing import Union
import logging

import numpy as np

from seqpack.core.alphabet import Alphabet
from seqpack.core.interval import Interval, NOT_FOUND
from seqpack.engines.search import _text_codes, _query_codes, _origin
from seqpack.lib.resources import jit


log = logging.getLogger(__name__)


# Classes --------------------------------------------------------------------------------------------------------------
class ApproximateSearchQuery:
    """
    A reusable approximate-search query.

    The match tables (one bit-vector per alphabet code, for the query and its reverse) are built
    once per text alphabet and cached.

    Args:
        query: A ``Seq``, ``Kmer`` or text.
        alphabet: The alphabet to interpret text queries in (inferred for ``Seq`` and ``Kmer``).

    Examples:
        >>> q = ApproximateSearchQuery('AGGG')
        >>> q.search(Alphabet.DNA.seq_from('AAGAGG'), 1)
        1:5(.)
    """
    __slots__ = ('_query', '_compiled')
    MAX_BIT_PARALLEL = 62

    def __init__(self, query, alphabet: Alphabet = None):
        self._query = query
        self._compiled: dict[Alphabet, tuple] = {}
        if alphabet is not None: self._compile(alphabet)
        elif getattr(query, 'alphabet', None) is not None: self._compile(query.alphabet)

    def __repr__(self): return f"ApproximateSearchQuery({self._query!r})"

    def _compile(self, alphabet: Alphabet) -> tuple:
        if (compiled := self._compiled.get(alphabet)) is not None: return compiled
        codes = _query_codes(self._query, alphabet)
        rcodes = np.ascontiguousarray(codes[::-1])
        peq = rpeq = None
        if len(codes) <= self.MAX_BIT_PARALLEL:
            peq, rpeq = _peq_table(codes, alphabet.compatibility), _peq_table(rcodes, alphabet.compatibility)
        log.debug('Compiled %d-symbol approximate query for %s', len(codes), alphabet)
        self._compiled[alphabet] = compiled = (codes, rcodes, peq, rpeq)
        return compiled

    def search(self, text, k: int, start: int = 0) -> Interval:
        """
        Finds the leftmost-ending match within ``k`` errors, starting at or after ``start``.

        Args:
            text: The sequence to search.
            k: Maximum edit distance.
            start: The position to start searching from.

        Returns:
            The matching ``Interval``, or ``NOT_FOUND``. If ``k >= len(query)`` the empty
            interval at ``start`` matches.

        Raises:
            ValueError: If ``k`` is negative.
            RangeError: If ``start`` is outside ``[0, len(text)]``.
        """
        if k < 0: raise ValueError(f"Maximum errors must be non-negative, not {k}")
        codes, alphabet = _text_codes(text)
        start = _origin(start, len(codes))
        query, rquery, peq, _ = self._compile(alphabet)
        m = len(query)
        if k >= m: return Interval(start, start)
        window = codes[start:]
        compat = alphabet.compatibility
        n = _myers_kernel(window, peq, m, k) if peq is not None else _sellers_kernel(window, query, compat, k)
        if n < 0: return NOT_FOUND
        length, _ = _anchored_kernel(window[:n][::-1], rquery, compat, m + k)
        return Interval(start + n - length, start + n)

    def rsearch(self, text, k: int, stop: int = None) -> Interval:
        """
        Finds the rightmost-starting match within ``k`` errors, ending at or before ``stop``.

        Returns:
            The matching ``Interval``, or ``NOT_FOUND``. If ``k >= len(query)`` the empty
            interval at ``stop`` matches.

        Raises:
            ValueError: If ``k`` is negative.
            RangeError: If ``stop`` is outside ``[0, len(text)]``.
        """
        if k < 0: raise ValueError(f"Maximum errors must be non-negative, not {k}")
        codes, alphabet = _text_codes(text)
        stop = _origin(len(codes) if stop is None else stop, len(codes))
        query, rquery, _, rpeq = self._compile(alphabet)
        m = len(query)
        if k >= m: return Interval(stop, stop)
        window = codes[:stop][::-1]
        compat = alphabet.compatibility
        n = _myers_kernel(window, rpeq, m, k) if rpeq is not None else _sellers_kernel(window, rquery, compat, k)
        if n < 0: return NOT_FOUND
        begin = stop - n
        length, _ = _anchored_kernel(codes[begin:stop], query, compat, m + k)
        return Interval(begin, begin + length)


# Functions ------------------------------------------------------------------------------------------------------------
def _as_query(query) -> ApproximateSearchQuery:
    return query if isinstance(query, ApproximateSearchQuery) else ApproximateSearchQuery(query)


def approxsearch(text, query: Union[ApproximateSearchQuery, str], k: int, start: int = 0) -> Interval:
    """
    Finds the first approximate occurrence of ``query`` in ``text`` within ``k`` errors.

    Examples:
        >>> seq = Alphabet.DNA.seq_from('ACAGCGTAGCT')
        >>> approxsearch(seq, 'AGGG', 0)
        -1:-1(.)
        >>> approxsearch(seq, 'AGGG', 1)
        2:6(.)
        >>> approxsearch(seq, 'AGGG', 2)
        0:4(.)
    """
    return _as_query(query).search(text, k, start)


def approxrsearch(text, query, k: int, stop: int = None) -> Interval:
    """Finds the last approximate occurrence of ``query`` in ``text`` within ``k`` errors.

    Examples:
        >>> approxrsearch(Alphabet.DNA.seq_from('ACAGCGTAGCT'), 'AGGG', 2)
        7:11(.)
    """
    return _as_query(query).rsearch(text, k, stop)


def approxsearch_index(text, query, k: int, start: int = 0) -> int:
    return approxsearch(text, query, k, start).start


def approxrsearch_index(text, query, k: int, stop: int = None) -> int:
    return approxrsearch(text, query, k, stop).start


def _pair_codes(a, b, compatible: bool) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    alphabet = getattr(a, 'alphabet', None) or getattr(b, 'alphabet', None) or Alphabet.DNA
    eq = alphabet.compatibility if compatible else _identity(len(alphabet))
    return alphabet.codes_from(a), alphabet.codes_from(b), eq


def hamming_distance(a, b, compatible: bool = True) -> int:
    """
    Counts the positions at which two equal-length sequences differ.

    Args:
        a: A sequence or text.
        b: A sequence or text (interpreted in ``a``'s alphabet).
        compatible: Treat compatible symbols (e.g. ``A`` and ``N``) as equal.

    Raises:
        ValueError: If the lengths differ.
    """
    codes_a, codes_b, eq = _pair_codes(a, b, compatible)
    if len(codes_a) != len(codes_b): raise ValueError(f"Lengths differ ({len(codes_a)} != {len(codes_b)})")
    return int(_hamming_kernel(codes_a, codes_b, eq))


def levenshtein_distance(a, b, compatible: bool = True) -> int:
    """Returns the edit distance between two sequences (unit-cost substitutions and indels)."""
    codes_a, codes_b, eq = _pair_codes(a, b, compatible)
    return int(_edit_distance_kernel(codes_a, codes_b, eq))


def _peq_table(codes: np.ndarray, compat: np.ndarray) -> np.ndarray:
    """One bit-vector per alphabet code, with bit ``i`` set where the code is compatible with ``codes[i]``."""
    peq = np.zeros(len(compat), dtype=np.int64)
    for i, c in enumerate(codes.tolist()): peq[compat[:, c]] |= 1 << i
    return peq


def _identity(n: int) -> np.ndarray:
    if (eq := _IDENTITY.get(n)) is None: _IDENTITY[n] = eq = np.eye(n, dtype=bool)
    return eq


_IDENTITY: dict[int, np.ndarray] = {}


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _myers_kernel(text, peq, m, k):
    mask = (1 << m) - 1
    high = 1 << (m - 1)
    pv, mv, score = mask, 0, m
    for j in range(len(text)):
        eq = peq[text[j]]
        xv = eq | mv
        xh = ((((eq & pv) + pv) & mask) ^ pv) | eq
        ph = (mv | ~(xh | pv)) & mask
        mh = pv & xh
        if ph & high: score += 1
        elif mh & high: score -= 1
        ph = (ph << 1) & mask
        mh = (mh << 1) & mask
        pv = (mh | ~(xv | ph)) & mask
        mv = ph & xv
        if score <= k: return j + 1
    return -1


@jit(nopython=True, cache=True, nogil=True)
def _sellers_kernel(text, query, compat, k):
    m = len(query)
    col = np.arange(m + 1)
    for j in range(len(text)):
        diag = 0
        for i in range(1, m + 1):
            up = col[i]
            cost = 0 if compat[text[j], query[i - 1]] else 1
            col[i] = min(diag + cost, up + 1, col[i - 1] + 1)
            diag = up
        if col[m] <= k: return j + 1
    return -1


@jit(nopython=True, cache=True, nogil=True)
def _anchored_kernel(text, query, compat, max_len):
    """Best (length, distance) of ``query`` against a prefix of ``text``; ties prefer the longer prefix."""
    m = len(query)
    col = np.arange(m + 1)
    best_len, best_d = 0, m
    for j in range(min(len(text), max_len)):
        diag = col[0]
        col[0] = j + 1
        for i in range(1, m + 1):
            up = col[i]
            cost = 0 if compat[text[j], query[i - 1]] else 1
            col[i] = min(diag + cost, up + 1, col[i - 1] + 1)
            diag = up
        if col[m] <= best_d:
            best_len, best_d = j + 1, col[m]
    return best_len, best_d


@jit(nopython=True, cache=True, nogil=True)
def _edit_distance_kernel(a, b, eq):
    col = np.arange(len(b) + 1)
    for i in range(len(a)):
        diag = col[0]
        col[0] = i + 1
        for j in range(1, len(b) + 1):
            up = col[j]
            cost = 0 if eq[a[i], b[j - 1]] else 1
            col[j] = min(diag + cost, up + 1, col[j - 1] + 1)
            diag = up
    return col[len(b)]


@jit(nopython=True, cache=True, nogil=True)
def _hamming_kernel(a, b, eq):
    d = 0
    for i in range(len(a)):
        if not eq[a[i], b[i]]: d += 1
    return d
