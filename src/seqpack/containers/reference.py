"""
Immutable reference sequences stored at about two bits per base.

A ``ReferenceSeq`` holds ``A``, ``C``, ``G``, ``T`` and ``N`` only. Bases are packed into a
2-bit ``Seq`` and runs of ``N`` are kept apart as ``(start, end)`` pairs, so a genome with a few
unknown stretches costs little more than its 2-bit packing.
"""
from typing import Final, Iterator, Union

import numpy as np

from seqpack.core.alphabet import Alphabet, DecodeError
from seqpack.core.interval import Interval, Strand
from seqpack.containers.seq import Seq, RangeError
from seqpack.lib.protocols import HasAlphabet


# Classes --------------------------------------------------------------------------------------------------------------
class ReferenceSeq(HasAlphabet):
    """
    Immutable ``ACGTN`` sequence with ``N`` positions stored as runs.

    Use ``ReferenceSeq.from_seq()`` to create one. Indexing returns a symbol; slicing returns a
    ``ReferenceSeq`` sharing the packed bases of its parent. ``encoded`` yields DNA codes, so
    reference sequences can be searched like any ``Seq``.

    Args:
        bases: The bases packed with ``Alphabet.DNA_2BIT`` (``N`` positions hold ``A``).
        runs: ``(n, 2)`` array of sorted, disjoint ``[start, end)`` runs of ``N``.
        _validation_token: Internal token to prevent direct construction.

    Examples:
        >>> ref = ReferenceSeq.from_seq('NNCGTATTTTCN')
        >>> ref[0], ref[4]
        ('N', 'T')
        >>> ref[1:6]
        NCGTA
        >>> ReferenceSeq.from_seq('ATGM')
        Traceback (most recent call last):
        ...
        seqpack.core.alphabet.DecodeError: Invalid symbol 'M' at position 3 for alphabet ACGTN
    """
    __slots__ = ('_bases', '_runs')
    SYMBOLS: Final = 'ACGTN'
    _DNA = Alphabet.DNA
    _PACKED = Alphabet.DNA_2BIT

    def __init__(self, bases: Seq, runs: np.ndarray, _validation_token: object = None):
        if _validation_token is not self._PACKED:
            raise PermissionError("ReferenceSeq objects must be created via ReferenceSeq.from_seq")
        self._bases = bases
        self._runs = runs

    @classmethod
    def from_seq(cls, data) -> 'ReferenceSeq':
        """
        Creates a reference sequence from a ``Seq`` of any nucleotide alphabet, or from text.

        Raises:
            DecodeError: Naming the first symbol outside ``ACGTN`` and its position.
        """
        codes = cls._DNA.codes_from(data)
        if (bad := np.flatnonzero(~_ALLOWED[codes])).size:
            i = int(bad[0])
            raise DecodeError(cls._DNA.decode_symbol(int(codes[i])), i, cls.SYMBOLS)
        return cls._from_codes(codes)

    @classmethod
    def _from_codes(cls, codes: np.ndarray) -> 'ReferenceSeq':
        edges = np.flatnonzero(np.diff((codes == cls._DNA.wildcard).astype(np.int8), prepend=0, append=0))
        return cls(cls._PACKED.new_seq(_TO_PACKED[codes]), edges.reshape(-1, 2), _validation_token=cls._PACKED)

    def _new(self, bases: Seq, runs: np.ndarray) -> 'ReferenceSeq':
        return ReferenceSeq(bases, runs, _validation_token=self._PACKED)

    def _in_run(self, i: int) -> bool:
        j = int(np.searchsorted(self._runs[:, 1], i, side='right'))
        return j < len(self._runs) and self._runs[j, 0] <= i

    # Properties ---------------------------------------------------------------------------------------------------
    @property
    def alphabet(self) -> Alphabet: return self._DNA

    @property
    def encoded(self) -> np.ndarray:
        """Returns the ``Alphabet.DNA`` codes as a new ``uint8`` array."""
        codes = _FROM_PACKED[self._bases.encoded]
        for start, end in self._runs.tolist(): codes[start:end] = self._DNA.wildcard
        return codes

    @property
    def n_runs(self) -> list[Interval]:
        """The runs of ``N``, in order."""
        return [Interval(start, end) for start, end in self._runs.tolist()]

    @property
    def nbytes(self) -> int:
        """Number of bytes the packed bases and ``N`` runs occupy."""
        return self._bases.nbytes + self._runs.nbytes

    # Dunder methods -----------------------------------------------------------------------------------------------
    def __len__(self): return len(self._bases)
    def __bytes__(self) -> bytes: return self._DNA.decode(self.encoded)
    def __str__(self): return self.__bytes__().decode('ascii')
    def __iter__(self) -> Iterator[str]: return iter(str(self))
    def __hash__(self): return hash(bytes(self))

    def __repr__(self):
        if len(self) <= 14: return str(self)
        return f"<ReferenceSeq: {len(self)} bp, {len(self._runs)} N runs>"

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, ReferenceSeq): return False
        return len(self) == len(other) and np.array_equal(self.encoded, other.encoded)

    def __getitem__(self, item: Union[int, slice, Interval]) -> Union[str, 'ReferenceSeq']:
        """Extracts a symbol by index, or a reference subsequence by slice or ``Interval``.

        Raises:
            RangeError: If the index or range lies outside the sequence.
        """
        n = len(self)
        if isinstance(item, (int, np.integer)):
            i = item + n if item < 0 else item
            if not 0 <= i < n: raise RangeError(item, n)
            return 'N' if self._in_run(i) else self._bases[int(i)]
        if isinstance(item, slice) and item.step not in (None, 1):
            return self._from_codes(self.encoded[item])
        if isinstance(item, (slice, Interval)):
            interval = Interval.from_slice(item, length=n) if isinstance(item, slice) else item
            start, stop = interval.start, interval.end
            if not (0 <= start <= n and 0 <= stop <= n): raise RangeError(item, n)
            stop = max(start, stop)
            runs = np.clip(self._runs, start, stop) - start
            sub = self._new(self._bases[start:stop], runs[runs[:, 1] > runs[:, 0]])
            return sub.reverse_complement() if interval.strand == Strand.REVERSE else sub
        raise TypeError(f"ReferenceSeq indices must be integers, slices or Intervals, not {type(item).__name__}")

    # Transforms ---------------------------------------------------------------------------------------------------
    def reverse_complement(self) -> 'ReferenceSeq':
        """Returns the reverse complement (``N`` runs are mirrored)."""
        return self._new(self._bases.reverse_complement(), len(self) - self._runs[::-1, ::-1])

    def to_seq(self) -> Seq:
        """Returns an exclusively owned ``Alphabet.DNA`` sequence."""
        return self._DNA.new_seq(self.encoded)


# Constants ------------------------------------------------------------------------------------------------------------
_ALLOWED = np.zeros(len(Alphabet.DNA), dtype=bool)
_ALLOWED[Alphabet.DNA.encode(ReferenceSeq.SYMBOLS)] = True
_TO_PACKED = np.zeros(len(Alphabet.DNA), dtype=np.uint8)
_TO_PACKED[Alphabet.DNA.encode('ACGT')] = Alphabet.DNA_2BIT.encode('ACGT')
_FROM_PACKED = Alphabet.DNA.encode('ACGT')
