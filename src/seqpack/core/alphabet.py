"""
Module for representing biological alphabets as compact symbol codes.

Every alphabet assigns each symbol a small integer code equal to its position in the
alphabet's symbol string. Nucleotide alphabets with ambiguity codes are laid out so that
the code *is* the bit set of the bases it denotes (A=1, C=2, G=4, T=8, gap=0), and all
alphabets carry a boolean compatibility matrix derived from their member sets, so kernels
can test ``compat[x, y]`` without knowing which alphabet they run on.
"""
from typing import Union, Final, ClassVar, Optional

import numpy as np

from seqpack.containers.seq import Seq, SeqBuffer
from seqpack.lib.resources import RESOURCES


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class AlphabetError(Exception):
    """Raised when an alphabet is invalid or an operation is incompatible with the alphabet."""


class DecodeError(ValueError):
    """
    Raised when a character or code is not valid for an alphabet.

    Attributes:
        value: The offending character or code.
        position: Its position in the input, or ``None`` for a single symbol.
    """
    def __init__(self, value, position: Optional[int] = None, alphabet: Optional[str] = None):
        self.value = value
        self.position = position
        where = f' at position {position}' if position is not None else ''
        name = f' for alphabet {alphabet}' if alphabet else ''
        super().__init__(f'Invalid symbol {value!r}{where}{name}')


Symbol = Union[str, bytes, int, np.integer]


# Classes --------------------------------------------------------------------------------------------------------------
class Alphabet:
    """
    A closed set of biological symbols with their code, compatibility and complement tables.

    Symbols are one-character strings; codes are the integers stored in sequences.

    Args:
        name: Display name, e.g. ``'DNA'``.
        symbols: The symbols in code order.
        bits: Storage width per symbol (2, 4 or 8).
        kind: ``'dna'``, ``'rna'`` or ``'amino'``; alphabets of one kind can recode each other.
        members: Ambiguity symbols mapped to the unambiguous symbols they may denote.
        complement: Complement symbols in code order (nucleotides only).
        gap: The gap symbol, which denotes no base at all.
        wildcard: The symbol compatible with every base (``N`` / ``X``).

    Raises:
        AlphabetError: If symbols are not ASCII, do not fit ``bits``, contain duplicates, or if the
            member or complement definitions are invalid.

    Examples:
        >>> Alphabet.DNA.encode_symbol('R')
        5
        >>> Alphabet.DNA.compatible('A', 'N')
        True
    """
    __slots__ = ('_name', '_kind', '_data', '_bits', '_members', '_lookup_table', '_decode_table', '_compat',
                 '_ambiguous', '_complement', '_gap', '_wildcard', '_unambiguous')
    DTYPE: Final = np.uint8
    INVALID: Final = np.iinfo(DTYPE).max
    MAX_LEN: Final = INVALID + 1
    ENCODING: Final = 'ascii'

    DNA: ClassVar['Alphabet']
    RNA: ClassVar['Alphabet']
    DNA_2BIT: ClassVar['Alphabet']
    RNA_2BIT: ClassVar['Alphabet']
    AMINO: ClassVar['Alphabet']

    def __init__(self, name: str, symbols: bytes, bits: int, kind: str, members: dict[bytes, bytes] = None,
                 complement: bytes = None, gap: bytes = None, wildcard: bytes = None):
        if not symbols.isascii(): raise AlphabetError('Alphabet symbols must be a valid ASCII string')
        if bits not in (2, 4, 8): raise AlphabetError(f'Storage width must be 2, 4 or 8 bits, not {bits}')
        if len(symbols) > (1 << bits):
            raise AlphabetError(f'{len(symbols)} symbols do not fit in {bits} bits per symbol')
        if len(set(symbols.upper())) != len(symbols): raise AlphabetError('Alphabet contains duplicate symbols')

        self._name = name
        self._kind = kind
        self._bits = bits
        self._data: np.ndarray = np.frombuffer(symbols, dtype=self.DTYPE)

        # Lookup Table (both cases)
        self._lookup_table = np.full(self.MAX_LEN, self.INVALID, dtype=self.DTYPE)
        indices = np.arange(len(symbols), dtype=self.DTYPE)
        self._lookup_table[np.frombuffer(symbols, dtype=self.DTYPE)] = indices
        self._lookup_table[np.frombuffer(symbols.lower(), dtype=self.DTYPE)] = indices

        # Decode Table (for bytes.translate)
        decode_map = np.zeros(self.MAX_LEN, dtype=self.DTYPE)
        decode_map[:len(symbols)] = self._data
        self._decode_table = decode_map.tobytes()

        self._gap = None if gap is None else self._lookup(gap)
        self._wildcard = None if wildcard is None else self._lookup(wildcard)

        # Member sets: every unambiguous symbol owns one bit, ambiguity codes are unions, gap is empty
        members = members or {}
        bases = [s for s in symbols if bytes([s]) not in members and bytes([s]) != gap]
        if len(bases) > 64: raise AlphabetError('Alphabets support at most 64 unambiguous symbols')
        base_bit = {s: 1 << i for i, s in enumerate(bases)}
        self._members = np.zeros(len(symbols), dtype=np.uint64)
        for s in bases: self._members[self._lookup(bytes([s]))] = base_bit[s]
        for src, dst in members.items():
            if any(s not in base_bit for s in dst): raise AlphabetError(f"Members of {src} must be unambiguous symbols")
            self._members[self._lookup(src)] = sum(base_bit[s] for s in set(dst))

        # Compatibility: equality, or intersecting member sets
        self._compat = (self._members[:, None] & self._members[None, :]) != 0
        np.fill_diagonal(self._compat, True)
        self._compat.flags.writeable = False
        self._ambiguous = np.array([bin(int(m)).count('1') > 1 for m in self._members], dtype=bool)
        self._ambiguous.flags.writeable = False
        unambiguous = [c for c in range(len(symbols)) if not self._ambiguous[c] and c != self._gap]
        self._unambiguous = np.array(unambiguous, dtype=self.DTYPE)

        self._complement = None
        if complement is not None:
            if len(complement) != len(symbols):
                raise AlphabetError("Complement must be the same length as symbols")
            comp_indices = self._lookup_table[np.frombuffer(complement, dtype=self.DTYPE)]
            if np.any(comp_indices == self.INVALID):
                raise AlphabetError("Complement contains symbols not in alphabet")
            self._complement = comp_indices
            self._complement.flags.writeable = False

    def _lookup(self, symbol: bytes) -> int:
        code = self._lookup_table[symbol[0]]
        if code == self.INVALID: raise AlphabetError(f"Symbol {symbol!r} not in alphabet")
        return int(code)

    def __len__(self): return len(self._data)
    def __iter__(self): return iter(self._data.tobytes().decode(self.ENCODING))
    def __getitem__(self, code: int) -> str: return self.decode_symbol(code)
    def __repr__(self): return f"<Alphabet {self._name}: {self._data.tobytes().decode(self.ENCODING)}>"
    def __str__(self): return self._name

    def __contains__(self, item):
        try:
            if isinstance(item, (int, np.integer)): return 0 <= item < len(self)
            if isinstance(item, (str, bytes)):
                if len(item) != 1: return False
                val = ord(item) if isinstance(item, str) else item[0]
                return self._lookup_table[val] != self.INVALID
        except (IndexError, ValueError, TypeError):
            pass
        return False

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, Alphabet): return False
        if (self._complement is None) != (other._complement is None): return False
        return (self._bits == other._bits and self._gap == other._gap and
                np.array_equal(self._data, other._data) and np.array_equal(self._members, other._members) and
                (self._complement is None or np.array_equal(self._complement, other._complement)))

    def __hash__(self):
        return hash((self._bits, self._data.tobytes(), self._members.tobytes()))

    # Properties ---------------------------------------------------------------------------------------------------
    @property
    def name(self) -> str: return self._name
    @property
    def kind(self) -> str: return self._kind
    @property
    def is_nucleic(self) -> bool: return self._kind in ('dna', 'rna')
    @property
    def symbols(self) -> bytes: return self._data.tobytes()

    @property
    def bits_per_symbol(self) -> int:
        """Returns the number of bits each symbol occupies in packed storage."""
        return self._bits

    @property
    def compatibility(self) -> np.ndarray:
        """Read-only boolean matrix where ``[x, y]`` is ``True`` if codes x and y may denote the same symbol."""
        return self._compat

    @property
    def ambiguous(self) -> np.ndarray:
        """Read-only boolean table of ambiguous codes."""
        return self._ambiguous

    @property
    def complement(self) -> Optional[np.ndarray]:
        """Returns the complement lookup table if available."""
        return self._complement

    @property
    def gap(self) -> Optional[int]:
        """The code of the gap symbol, or ``None`` if the alphabet has none."""
        return self._gap

    @property
    def wildcard(self) -> Optional[int]:
        """The code of the symbol compatible with every base, or ``None``."""
        return self._wildcard

    @property
    def unambiguous_codes(self) -> np.ndarray:
        """Codes denoting exactly one symbol, in code order."""
        return self._unambiguous

    # Single symbols -----------------------------------------------------------------------------------------------
    def _code(self, symbol: Symbol) -> int:
        if isinstance(symbol, (int, np.integer)):
            if not 0 <= symbol < len(self._data): raise DecodeError(int(symbol), alphabet=self._name)
            return int(symbol)
        if isinstance(symbol, (str, bytes)) and len(symbol) == 1:
            val = ord(symbol) if isinstance(symbol, str) else symbol[0]
            if val < self.MAX_LEN and (code := self._lookup_table[val]) != self.INVALID: return int(code)
        raise DecodeError(symbol, alphabet=self._name)

    def encode_symbol(self, symbol: Union[str, bytes]) -> int:
        """Returns the code of a single symbol.

        Raises:
            DecodeError: If the symbol is not in the alphabet.
        """
        if isinstance(symbol, (int, np.integer)): raise DecodeError(symbol, alphabet=self._name)
        return self._code(symbol)

    def decode_symbol(self, code: int) -> str:
        """Returns the symbol for a code.

        Raises:
            DecodeError: If the code is out of range for this alphabet.
        """
        if not isinstance(code, (int, np.integer)): raise DecodeError(code, alphabet=self._name)
        return chr(self._data[self._code(code)])

    def compatible(self, x: Symbol, y: Symbol) -> bool:
        """Tests if two symbols (or codes) could denote the same underlying symbol.

        Examples:
            >>> Alphabet.DNA.compatible('C', 'R')  # R is A or G
            False
        """
        return bool(self._compat[self._code(x), self._code(y)])

    def is_ambiguous(self, x: Symbol) -> bool: return bool(self._ambiguous[self._code(x)])
    def is_gap(self, x: Symbol) -> bool: return self._gap is not None and self._code(x) == self._gap

    def complement_symbol(self, x: Symbol) -> Symbol:
        """Returns the complement of a symbol (as a symbol) or of a code (as a code).

        Ambiguity codes complement bit-wise, e.g. ``R`` (A or G) becomes ``Y`` (T or C).

        Raises:
            AlphabetError: If the alphabet has no complement.
        """
        table = self._require_complement()
        code = int(table[self._code(x)])
        if isinstance(x, (int, np.integer)): return code
        return chr(self._data[code])

    def _require_complement(self) -> np.ndarray:
        if self._complement is None: raise AlphabetError(f'The {self._name} alphabet has no complement')
        return self._complement

    # Bulk codecs --------------------------------------------------------------------------------------------------
    def encode(self, text: Union[bytes, str]) -> np.ndarray:
        """
        Encodes text into an array of codes.

        Args:
            text: The text to encode (bytes or ASCII string, either case).

        Returns:
            A new ``uint8`` numpy array of codes.

        Raises:
            DecodeError: Naming the first invalid character and its position.
        """
        if isinstance(text, str):
            try: text = text.encode(self.ENCODING)
            except UnicodeEncodeError as e:
                raise DecodeError(text[e.start], e.start, self._name) from None
        codes = self._lookup_table[np.frombuffer(text, dtype=self.DTYPE)]
        if (bad := np.flatnonzero(codes == self.INVALID)).size:
            i = int(bad[0])
            raise DecodeError(chr(text[i]), i, self._name)
        return codes

    def decode(self, encoded: np.ndarray) -> bytes:
        """Decodes an array of codes back to bytes.

        Raises:
            DecodeError: Naming the first out-of-range code and its position.
        """
        encoded = np.asarray(encoded)
        if (bad := np.flatnonzero((encoded < 0) | (encoded >= len(self._data)))).size:
            i = int(bad[0])
            raise DecodeError(int(encoded[i]), i, self._name)
        if encoded.dtype != self.DTYPE: encoded = encoded.astype(self.DTYPE)
        return encoded.tobytes().translate(self._decode_table)

    def recode(self, codes: np.ndarray, source: 'Alphabet') -> np.ndarray:
        """
        Re-encodes codes of another alphabet of the same family into this alphabet.

        DNA and RNA alphabets recode into each other, exchanging T and U.

        Raises:
            AlphabetError: If the alphabets belong to unrelated families.
            DecodeError: If a symbol has no counterpart in this alphabet (e.g. ``N`` into 2-bit DNA).
        """
        if source is self or source == self: return codes
        chars = source._data
        if source._kind != self._kind:
            if not (source.is_nucleic and self.is_nucleic):
                raise AlphabetError(f'Cannot recode {source} sequences into {self}')
            chars = np.frombuffer(chars.tobytes().translate(_TU_SWAP), dtype=self.DTYPE)
        out = self._lookup_table[chars][codes]
        if (bad := np.flatnonzero(out == self.INVALID)).size:
            i = int(bad[0])
            raise DecodeError(chr(chars[codes[i]]), i, self._name)
        return out

    def complement_codes(self, codes: np.ndarray) -> np.ndarray:
        """Returns the complemented codes as a new array.

        Raises:
            AlphabetError: If the alphabet has no complement.
        """
        return self._require_complement()[codes]

    def codes_from(self, data) -> np.ndarray:
        """
        Coerces symbols in any supported form into an array of this alphabet's codes.

        Args:
            data: A ``Seq`` or ``Kmer`` (recoded if of another alphabet), text, a single symbol,
                an array of codes, or a list of symbols or codes.

        Returns:
            A ``uint8`` numpy array (may share memory with ``data`` if it is an array).

        Raises:
            DecodeError: If any symbol or code is not valid for this alphabet.
        """
        if isinstance(data, (str, bytes)): return self.encode(data)
        if (alphabet := getattr(data, 'alphabet', None)) is not None and hasattr(data, 'encoded'):
            return self.recode(data.encoded, alphabet)
        if isinstance(data, (list, tuple)) and data and all(isinstance(s, (str, bytes)) for s in data):
            if any(len(s) != 1 for s in data):
                i = next(i for i, s in enumerate(data) if len(s) != 1)
                raise DecodeError(data[i], i, self._name)
            return self.encode(''.join(s if isinstance(s, str) else s.decode(self.ENCODING) for s in data))
        codes = np.asarray(data)
        if codes.size == 0: return np.empty(0, dtype=self.DTYPE)
        if codes.dtype.kind not in 'iu': raise TypeError(f"Cannot interpret {type(data)} as symbol codes")
        if (bad := np.flatnonzero((codes < 0) | (codes >= len(self._data)))).size:
            i = int(bad[0])
            raise DecodeError(int(codes[i]), i, self._name)
        return codes.astype(self.DTYPE, copy=False)

    # Factories ----------------------------------------------------------------------------------------------------
    def new_seq(self, codes: np.ndarray) -> 'Seq':
        """
        Factory method. The ONLY valid way to create a Seq; ``codes`` are assumed valid.
        """
        buffer = SeqBuffer.from_codes(codes, self._bits)
        return Seq(buffer, 0, len(codes), self, _validation_token=self)

    def seq_from(self, data) -> 'Seq':
        """Creates a Seq object from various input types, ensuring correct encoding.

        Args:
            data: A ``Seq`` (a shared view is returned for this alphabet, a recoded copy otherwise),
                a ``Kmer``, text, or an array/list of codes or symbols.

        Returns:
            A ``Seq`` with this alphabet.

        Raises:
            DecodeError: If the input contains symbols not in the alphabet.

        Examples:
            >>> Alphabet.DNA.seq_from('ACGTN')
            ACGTN
        """
        if isinstance(data, Seq) and data.alphabet is self: return data[:]
        return self.new_seq(self.codes_from(data))

    def empty_seq(self) -> 'Seq':
        """Returns an empty sequence with this alphabet."""
        return self.new_seq(np.empty(0, dtype=self.DTYPE))

    def random_seq(self, length: int, rng: np.random.Generator = None, weights=None) -> 'Seq':
        """
        Generates a random sequence of unambiguous symbols (no ambiguity codes, no gaps).

        Args:
            length: Length of the sequence.
            rng: Random number generator (defaults to the shared, optionally seeded one).
            weights: Probabilities for each unambiguous symbol, in code order.

        Returns:
            A random Seq object.

        Examples:
            >>> s = Alphabet.DNA.random_seq(10)
            >>> len(s)
            10
        """
        if rng is None: rng = RESOURCES.rng
        codes = rng.choice(self._unambiguous, size=length, p=weights)
        return self.new_seq(codes.astype(self.DTYPE, copy=False))


# Constants ------------------------------------------------------------------------------------------------------------
_TU_SWAP: Final = bytes.maketrans(b'TUtu', b'UTut')

_NUCLEOTIDE_MEMBERS = {
    b'M': b'AC', b'R': b'AG', b'W': b'AT', b'S': b'CG', b'Y': b'CT', b'K': b'GT',
    b'V': b'ACG', b'H': b'ACT', b'D': b'AGT', b'B': b'CGT', b'N': b'ACGT'
}


def _rna_members(members: dict[bytes, bytes]) -> dict[bytes, bytes]:
    return {k: v.replace(b'T', b'U') for k, v in members.items()}


# Initialize Standard Alphabets
Alphabet.DNA = Alphabet('DNA', b'-ACMGRSVTWYHKDBN', 4, 'dna', _NUCLEOTIDE_MEMBERS,
                        complement=b'-TGKCYSBAWRDMHVN', gap=b'-', wildcard=b'N')
Alphabet.RNA = Alphabet('RNA', b'-ACMGRSVUWYHKDBN', 4, 'rna', _rna_members(_NUCLEOTIDE_MEMBERS),
                        complement=b'-UGKCYSBAWRDMHVN', gap=b'-', wildcard=b'N')
Alphabet.DNA_2BIT = Alphabet('DNA_2BIT', b'ACGT', 2, 'dna', complement=b'TGCA')
Alphabet.RNA_2BIT = Alphabet('RNA_2BIT', b'ACGU', 2, 'rna', complement=b'UGCA')
Alphabet.AMINO = Alphabet('AMINO', b'ARNDCQEGHILKMFPSTWYVOUBJZX*-', 8, 'amino', {
    b'B': b'DN', b'J': b'IL', b'Z': b'EQ', b'X': b'ARNDCQEGHILKMFPSTWYVOU'}, gap=b'-', wildcard=b'X')
