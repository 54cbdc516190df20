"""
Barcode demultiplexing: assigning reads to the nearest of a set of well-separated barcodes.

At construction every sequence within ``max_errors`` of a barcode is enumerated into a hash
index, so classifying a read is a handful of dictionary lookups on its prefixes.
"""
from collections import deque
from enum import Enum
from itertools import combinations
from typing import Iterable, NamedTuple, Union
import logging

import numpy as np

from seqpack.core.alphabet import Alphabet
from seqpack.containers.seq import Seq
from seqpack.engines.approx import _anchored_kernel, _edit_distance_kernel, _hamming_kernel, _identity


log = logging.getLogger(__name__)


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class ConfigurationError(ValueError):
    """Raised when a demultiplexer cannot be built from the given barcodes."""


# Classes --------------------------------------------------------------------------------------------------------------
class Distance(Enum):
    """Barcode distance metrics: substitutions only, or substitutions and indels."""
    HAMMING = 'hamming'
    LEVENSHTEIN = 'levenshtein'

    def __str__(self): return self.value


class BarcodeCall(NamedTuple):
    """The 0-based barcode index and distance of a classified read (``-1, -1`` if unassigned)."""
    index: int
    distance: int

    @property
    def found(self) -> bool: return self.index >= 0


NO_MATCH = BarcodeCall(-1, -1)


class Demultiplexer:
    """
    Classifies reads by the barcode at their start.

    Barcode distances count literal symbol differences, so an ``N`` in a read is a no-call that
    costs one error. Every pair of barcodes must be more than ``2 * max_errors`` apart, which
    makes any read within ``max_errors`` of a barcode unambiguous.

    Args:
        barcodes: The barcode sequences (``Seq`` or text).
        max_errors: Number of correctable errors.
        distance: ``Distance.HAMMING`` (substitutions; barcodes must share a length) or
            ``Distance.LEVENSHTEIN`` (substitutions, insertions and deletions).
        alphabet: The alphabet for text barcodes (defaults to the first barcode's, or DNA).

    Raises:
        ConfigurationError: If there are no barcodes, Hamming barcodes differ in length, or two
            barcodes are within ``2 * max_errors`` of each other.
        ValueError: If ``max_errors`` is negative.

    Examples:
        >>> dplxr = Demultiplexer(['ATGG', 'CAGA', 'GGAA', 'TACG'], max_errors=1)
        >>> dplxr.classify(Alphabet.DNA.seq_from('CAGGCGNT'))
        BarcodeCall(index=1, distance=1)
        >>> dplxr.classify(Alphabet.DNA.seq_from('TGACCGNT'), fallback=True)
        BarcodeCall(index=2, distance=2)
    """
    __slots__ = ('_alphabet', '_barcodes', '_codes', '_max_errors', '_distance', '_eq', '_index', '_lengths')

    def __init__(self, barcodes: Iterable[Union[Seq, str]], max_errors: int = 1,
                 distance: Union[Distance, str] = Distance.HAMMING, alphabet: Alphabet = None):
        barcodes = list(barcodes)
        if not barcodes: raise ConfigurationError('At least one barcode is required')
        if max_errors < 0: raise ValueError(f'Maximum errors must be non-negative, not {max_errors}')
        self._alphabet = alphabet or getattr(barcodes[0], 'alphabet', None) or Alphabet.DNA
        self._distance = Distance(distance)
        self._max_errors = max_errors
        self._codes = [self._alphabet.codes_from(b) for b in barcodes]
        self._barcodes = [self._alphabet.new_seq(c) for c in self._codes]
        self._eq = _identity(len(self._alphabet))
        if self._distance is Distance.HAMMING and len({len(c) for c in self._codes}) > 1:
            raise ConfigurationError('Hamming distance requires barcodes of equal length')
        self._check_separation()
        self._index = self._build_index()
        self._lengths = sorted({len(key) for key in self._index})
        log.debug('Indexed %d variants of %d barcodes (%s distance, %d errors)',
                  len(self._index), len(self._barcodes), self._distance, max_errors)

    @property
    def barcodes(self) -> list[Seq]: return list(self._barcodes)
    @property
    def max_errors(self) -> int: return self._max_errors
    @property
    def distance(self) -> Distance: return self._distance
    @property
    def alphabet(self) -> Alphabet: return self._alphabet
    def __len__(self): return len(self._barcodes)
    def __getitem__(self, index: int) -> Seq: return self._barcodes[index][:]

    def __repr__(self):
        return (f"<Demultiplexer: {self._distance} distance, {len(self)} barcodes, "
                f"{self._max_errors} correctable errors>")

    def _pairwise(self, a: np.ndarray, b: np.ndarray) -> int:
        if self._distance is Distance.HAMMING: return int(_hamming_kernel(a, b, self._eq))
        return int(_edit_distance_kernel(a, b, self._eq))

    def _check_separation(self):
        for (i, a), (j, b) in combinations(enumerate(self._codes), 2):
            if (d := self._pairwise(a, b)) <= 2 * self._max_errors:
                raise ConfigurationError(
                    f'Barcodes {i} ({self._barcodes[i]}) and {j} ({self._barcodes[j]}) are {d} apart; '
                    f'correcting {self._max_errors} errors requires more than {2 * self._max_errors}'
                )

    def _edits(self, key: bytes) -> Iterable[bytes]:
        """Yields every sequence one edit away from ``key``."""
        symbols = self._substitutes
        for i, c in enumerate(key):
            for s in symbols:
                if s != c: yield key[:i] + bytes([s]) + key[i + 1:]
        if self._distance is Distance.LEVENSHTEIN:
            for i in range(len(key)): yield key[:i] + key[i + 1:]
            for i in range(len(key) + 1):
                for s in symbols: yield key[:i] + bytes([s]) + key[i:]

    @property
    def _substitutes(self) -> list[int]:
        symbols = self._alphabet.unambiguous_codes.tolist()
        if (wildcard := self._alphabet.wildcard) is not None: symbols.append(wildcard)
        return symbols

    def _build_index(self) -> dict[bytes, tuple[int, int]]:
        """Breadth-first enumeration of all variants within ``max_errors`` of each barcode."""
        index: dict[bytes, tuple[int, int]] = {}
        for i, codes in enumerate(self._codes):
            root = codes.tobytes()
            index[root] = (i, 0)
            queue = deque([(root, 0)])
            while queue:
                key, d = queue.popleft()
                if d == self._max_errors: continue
                for variant in self._edits(key):
                    if variant not in index:
                        index[variant] = (i, d + 1)
                        queue.append((variant, d + 1))
        return index

    def classify(self, seq: Union[Seq, str], fallback: bool = False) -> BarcodeCall:
        """
        Identifies the barcode at the start of a read.

        Args:
            seq: The read.
            fallback: If no barcode is within ``max_errors``, return the nearest barcode anyway
                (lowest index among equally near barcodes).

        Returns:
            A ``BarcodeCall``; ``NO_MATCH`` if the read is unassigned.
        """
        codes = self._alphabet.codes_from(seq)
        best = NO_MATCH
        for length in self._lengths:
            if length > len(codes): break
            if (hit := self._index.get(codes[:length].tobytes())) is not None:
                if not best.found or (hit[1], hit[0]) < (best.distance, best.index): best = BarcodeCall(*hit)
        if best.found or not fallback: return best
        return self._nearest(codes)

    def _nearest(self, codes: np.ndarray) -> BarcodeCall:
        best = NO_MATCH
        for i, barcode in enumerate(self._codes):
            if self._distance is Distance.HAMMING:
                n = min(len(codes), len(barcode))
                d = int(_hamming_kernel(codes[:n], barcode[:n], self._eq)) + len(barcode) - n
            else:
                d = int(_anchored_kernel(codes, barcode, self._eq, 2 * len(barcode))[1])
            if not best.found or d < best.distance: best = BarcodeCall(i, d)
        return best


# Functions ------------------------------------------------------------------------------------------------------------
def demultiplex(demultiplexer: Demultiplexer, seq: Union[Seq, str], fallback: bool = False) -> BarcodeCall:
    """Same as ``Demultiplexer.classify``."""
    return demultiplexer.classify(seq, fallback)
