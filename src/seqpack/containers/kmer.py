"""
Fixed-length nucleotide words packed into a single integer.

A ``Kmer`` holds up to 32 unambiguous bases, two bits each (A=0, C=1, G=2, T/U=3), with the
first base in the most significant bits. Integer order therefore equals lexicographic order,
and complementing is an XOR with all ones.
"""
from typing import Final, Iterator, Union

import numpy as np

from seqpack.core.alphabet import Alphabet, AlphabetError
from seqpack.containers.seq import Seq


# Classes --------------------------------------------------------------------------------------------------------------
class Kmer:
    """
    Immutable, hashable k-mer of unambiguous nucleotides.

    Args:
        value: The packed 2-bit value.
        k: Number of bases.
        alphabet: The nucleotide alphabet used to read and write symbols (defaults to DNA).

    Raises:
        ValueError: If ``k`` is outside ``[0, 32]`` or ``value`` does not fit in ``2 * k`` bits.
        AlphabetError: If the alphabet is not a nucleotide alphabet.

    Examples:
        >>> Kmer.from_str('ACGT')
        ACGT
        >>> int(Kmer.from_str('ACGT'))
        27
    """
    __slots__ = ('_value', '_k', '_alphabet')
    MAX_K: Final = 32

    def __init__(self, value: int, k: int, alphabet: Alphabet = None):
        if not 0 <= k <= self.MAX_K: raise ValueError(f"k must be between 0 and {self.MAX_K}, not {k}")
        if not 0 <= value < (1 << (2 * k)): raise ValueError(f"Value {value} does not fit in a {k}-mer")
        alphabet = alphabet or Alphabet.DNA
        _base_tables(alphabet)
        self._value = int(value)
        self._k = k
        self._alphabet = alphabet

    @classmethod
    def from_codes(cls, codes: np.ndarray, alphabet: Alphabet) -> 'Kmer':
        """Packs an array of ``alphabet`` codes.

        Raises:
            AlphabetError: If a code is ambiguous or a gap, or there are more than 32 codes.
        """
        if len(codes) > cls.MAX_K: raise AlphabetError(f"A k-mer holds at most {cls.MAX_K} bases, not {len(codes)}")
        to_2bit, _ = _base_tables(alphabet)
        value = 0
        for i, c in enumerate(to_2bit[codes].tolist()):
            if c == _NOT_A_BASE:
                raise AlphabetError(f"{alphabet.decode_symbol(int(codes[i]))!r} at position {i} is not a single base")
            value = (value << 2) | c
        return cls(value, len(codes), alphabet)

    @classmethod
    def from_str(cls, text: Union[str, bytes], alphabet: Alphabet = None) -> 'Kmer':
        """Creates a k-mer from text.

        Raises:
            DecodeError: If a character is not in the alphabet.
            AlphabetError: If a symbol is ambiguous or a gap.
        """
        alphabet = alphabet or Alphabet.DNA
        return cls.from_codes(alphabet.encode(text), alphabet)

    @classmethod
    def from_seq(cls, seq: Seq) -> 'Kmer':
        return cls.from_codes(seq.encoded, seq.alphabet)

    @property
    def k(self) -> int: return self._k
    @property
    def value(self) -> int: return self._value
    @property
    def alphabet(self) -> Alphabet: return self._alphabet

    @property
    def encoded(self) -> np.ndarray:
        """Returns the bases as codes of the k-mer's alphabet."""
        _, from_2bit = _base_tables(self._alphabet)
        return from_2bit[self._bases()]

    def _bases(self) -> np.ndarray:
        return np.array([(self._value >> (2 * i)) & 3 for i in range(self._k - 1, -1, -1)], dtype=np.uint8)

    def _new(self, value: int) -> 'Kmer': return Kmer(value, self._k, self._alphabet)

    def __len__(self): return self._k
    def __int__(self): return self._value
    def __hash__(self): return hash((self._k, self._value))
    def __str__(self): return self._alphabet.decode(self.encoded).decode('ascii')
    def __repr__(self): return str(self)
    def __iter__(self) -> Iterator[str]: return iter(str(self))

    def __eq__(self, other):
        if not isinstance(other, Kmer): return False
        return (self._k == other._k and self._value == other._value and
                self._alphabet.kind == other._alphabet.kind)

    def __lt__(self, other):
        if not isinstance(other, Kmer): return NotImplemented
        return (self._k, self._value) < (other._k, other._value)

    def __getitem__(self, i: int) -> str:
        j = i + self._k if i < 0 else i
        if not 0 <= j < self._k: raise IndexError(f"Index {i} out of range for a {self._k}-mer")
        _, from_2bit = _base_tables(self._alphabet)
        return self._alphabet.decode_symbol(int(from_2bit[(self._value >> (2 * (self._k - 1 - j))) & 3]))

    # Transforms ---------------------------------------------------------------------------------------------------
    def complement(self) -> 'Kmer': return self._new(self._value ^ ((1 << (2 * self._k)) - 1))

    def reverse(self) -> 'Kmer':
        value, rev = self._value, 0
        for _ in range(self._k):
            rev = (rev << 2) | (value & 3)
            value >>= 2
        return self._new(rev)

    def reverse_complement(self) -> 'Kmer': return self.reverse().complement()

    def canonical(self) -> 'Kmer':
        """Returns the smaller of the k-mer and its reverse complement.

        Examples:
            >>> Kmer.from_str('TTA').canonical()
            TAA
        """
        rc = self.reverse_complement()
        return rc if rc._value < self._value else self

    def neighbors(self) -> list['Kmer']:
        """Returns the four k-mers reachable by dropping the first base and appending A, C, G or T."""
        mask = (1 << (2 * self._k)) - 1
        return [self._new(((self._value << 2) | b) & mask) for b in range(4)]

    def to_seq(self, alphabet: Alphabet = None) -> Seq:
        alphabet = alphabet or self._alphabet
        return alphabet.new_seq(alphabet.recode(self.encoded, self._alphabet))

    @classmethod
    def each(cls, seq: Seq, k: int, step: int = 1) -> 'EachKmer':
        """Same as the module-level ``each``."""
        return EachKmer(seq, k, step)


class EachKmer:
    """
    Iterable of ``(position, Kmer)`` pairs over a sequence.

    Positions are 0-based starts. Windows containing an ambiguous symbol or gap are skipped
    without disturbing the frame: only starts that are multiples of ``step`` are reported.

    Args:
        seq: The nucleotide sequence to scan.
        k: The k-mer length (1 to 32).
        step: Distance between reported starts.

    Raises:
        ValueError: If ``k`` or ``step`` is out of range.
        AlphabetError: If the sequence is not nucleotide.

    Examples:
        >>> [(i, str(x)) for i, x in each(Alphabet.DNA.seq_from('ACGNTT'), 2)]
        [(0, 'AC'), (1, 'CG'), (4, 'TT')]
    """
    __slots__ = ('_seq', '_k', '_step')

    def __init__(self, seq: Seq, k: int, step: int = 1):
        if not 1 <= k <= Kmer.MAX_K: raise ValueError(f"k must be between 1 and {Kmer.MAX_K}, not {k}")
        if step < 1: raise ValueError(f"Step must be positive, not {step}")
        _base_tables(seq.alphabet)
        self._seq = seq
        self._k = k
        self._step = step

    @property
    def k(self) -> int: return self._k
    @property
    def step(self) -> int: return self._step
    def __repr__(self): return f"<EachKmer k={self._k} step={self._step} over {len(self._seq)} symbols>"

    def __iter__(self) -> Iterator[tuple[int, Kmer]]:
        k, step, alphabet = self._k, self._step, self._seq.alphabet
        to_2bit, _ = _base_tables(alphabet)
        mask = (1 << (2 * k)) - 1
        value, run = 0, 0
        for pos, c in enumerate(to_2bit[self._seq.encoded].tolist()):
            if c == _NOT_A_BASE:
                value, run = 0, 0
                continue
            value = ((value << 2) | c) & mask
            run += 1
            if run >= k and (start := pos - k + 1) % step == 0:
                yield start, Kmer(value, k, alphabet)


# Functions ------------------------------------------------------------------------------------------------------------
def each(seq: Seq, k: int, step: int = 1) -> EachKmer:
    """Iterates ``(position, Kmer)`` over every fully-unambiguous window of ``seq``."""
    return EachKmer(seq, k, step)


def canonical(kmer: Kmer) -> Kmer: return kmer.canonical()


def _base_tables(alphabet: Alphabet) -> tuple[np.ndarray, np.ndarray]:
    """Returns (alphabet code -> 2-bit base, 2-bit base -> alphabet code) tables, cached per alphabet."""
    if (tables := _TABLES.get(alphabet)) is not None: return tables
    if not alphabet.is_nucleic: raise AlphabetError(f"k-mers require a nucleotide alphabet, not {alphabet}")
    bases = b'ACGT' if alphabet.kind == 'dna' else b'ACGU'
    from_2bit = np.array([alphabet.encode_symbol(bytes([b])) for b in bases], dtype=np.uint8)
    to_2bit = np.full(len(alphabet), _NOT_A_BASE, dtype=np.uint8)
    to_2bit[from_2bit] = np.arange(4, dtype=np.uint8)
    _TABLES[alphabet] = tables = (to_2bit, from_2bit)
    return tables


# Constants ------------------------------------------------------------------------------------------------------------
_NOT_A_BASE: Final = 255
_TABLES: dict[Alphabet, tuple[np.ndarray, np.ndarray]] = {}
