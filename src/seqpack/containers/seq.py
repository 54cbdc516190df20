"""
Bit-packed, mutable biological sequences with copy-on-write sharing.

A ``Seq`` is a window (offset + length) onto a ``SeqBuffer``: a reference-counted arena of
``uint8`` words holding symbol codes at 2, 4 or 8 bits each. Slicing returns a view onto
the same buffer in O(1); the first mutation of a shared window copies it out, so no handle
ever observes another handle's edits.
"""
from typing import Union, Iterator

import numpy as np

from seqpack.core.interval import Interval, Strand
from seqpack.lib.resources import jit
from seqpack.lib.protocols import HasAlphabet


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class RangeError(IndexError):
    """Raised when an index or range lies outside a sequence's bounds."""
    def __init__(self, item, length: int):
        self.item = item
        self.length = length
        super().__init__(f'{item} is out of bounds for a sequence of length {length}')


# Classes --------------------------------------------------------------------------------------------------------------
class SeqBuffer:
    """
    A reference-counted arena of packed symbol codes.

    Codes are packed most-significant-first, ``8 // bits`` per word. ``refs`` counts the
    ``Seq`` handles currently viewing the arena; only a sole viewer may write in place.

    Args:
        words: The ``uint8`` storage array.
        bits: Bits per symbol (2, 4 or 8).
    """
    __slots__ = ('words', 'bits', 'refs')
    MIN_CAPACITY = 16

    def __init__(self, words: np.ndarray, bits: int):
        self.words = words
        self.bits = bits
        self.refs = 0

    @classmethod
    def from_codes(cls, codes: np.ndarray, bits: int) -> 'SeqBuffer':
        """Packs codes into a new buffer sized to hold them."""
        per_word = 8 // bits
        words = np.zeros((len(codes) + per_word - 1) // per_word, dtype=np.uint8)
        if len(codes): _pack_kernel(codes, words, 0, bits)
        return cls(words, bits)

    @property
    def capacity(self) -> int: return len(self.words) * (8 // self.bits)
    def acquire(self) -> 'SeqBuffer':
        self.refs += 1
        return self
    def release(self): self.refs -= 1

    def reserve(self, n: int):
        """Grows the arena geometrically so it can hold at least ``n`` symbols."""
        if n <= self.capacity: return
        per_word = 8 // self.bits
        n = max(n, 2 * self.capacity, self.MIN_CAPACITY)
        words = np.zeros((n + per_word - 1) // per_word, dtype=np.uint8)
        words[:len(self.words)] = self.words
        self.words = words

    def read(self, offset: int, length: int) -> np.ndarray:
        return _unpack_kernel(self.words, offset, length, self.bits)

    def write(self, codes: np.ndarray, offset: int):
        if len(codes): _pack_kernel(codes, self.words, offset, self.bits)

    def get(self, pos: int) -> int:
        per_word = 8 // self.bits
        shift = (per_word - 1 - pos % per_word) * self.bits
        return (int(self.words[pos // per_word]) >> shift) & ((1 << self.bits) - 1)

    def set(self, pos: int, code: int):
        per_word = 8 // self.bits
        shift = (per_word - 1 - pos % per_word) * self.bits
        word = int(self.words[pos // per_word]) & ~(((1 << self.bits) - 1) << shift)
        self.words[pos // per_word] = (word | (code << shift)) & 0xFF


class Seq(HasAlphabet):
    """
    Mutable, alphabet-aware sequence storing bit-packed symbol codes.

    ``Seq`` objects should be created via ``Alphabet.seq_from()`` or ``Alphabet.random_seq()``
    rather than directly, to ensure encoding consistency.

    Indexing with an integer returns a one-character symbol string; slicing returns a ``Seq``
    that shares storage with its parent until either one is modified.

    Args:
        buffer: The packed storage.
        offset: Position of the first symbol in the buffer.
        length: Number of symbols.
        alphabet: The ``Alphabet`` that owns this sequence.
        _validation_token: Internal token (must be the alphabet) to prevent direct construction.

    Examples:
        >>> seq = Alphabet.DNA.seq_from('ATGCGA')
        >>> seq[1:4]
        TGC
        >>> view = seq[1:4]
        >>> view[0] = 'A'
        >>> seq  # the parent is unaffected
        ATGCGA
    """
    __slots__ = ('_alphabet', '_buffer', '_offset', '_length')

    def __init__(self, buffer: SeqBuffer, offset: int, length: int, alphabet: 'Alphabet',
                 _validation_token: object = None):
        if _validation_token is not alphabet:
            raise PermissionError("Seq objects must be created via an Alphabet")
        self._alphabet = alphabet
        self._buffer = buffer.acquire()
        self._offset = offset
        self._length = length

    def __del__(self):
        if (buffer := getattr(self, '_buffer', None)) is not None: buffer.release()

    # Internals ----------------------------------------------------------------------------------------------------
    def _view(self, start: int, stop: int) -> 'Seq':
        return Seq(self._buffer, self._offset + start, stop - start, self._alphabet, _validation_token=self._alphabet)

    def _rebind(self, buffer: SeqBuffer, offset: int = 0):
        self._buffer.release()
        self._buffer = buffer.acquire()
        self._offset = offset

    def _detach(self):
        """Gives this handle exclusive storage if any other handle shares it."""
        if self._buffer.refs > 1:
            self._rebind(SeqBuffer.from_codes(self._buffer.read(self._offset, self._length), self._buffer.bits))

    def _splice(self, start: int, stop: int, codes: np.ndarray):
        """Replaces the symbols in ``[start, stop)`` with ``codes``."""
        self._detach()
        tail = self._buffer.read(self._offset + stop, self._length - stop)
        length = start + len(codes) + len(tail)
        self._buffer.reserve(self._offset + length)
        self._buffer.write(codes, self._offset + start)
        self._buffer.write(tail, self._offset + start + len(codes))
        self._length = length

    def _index(self, i: int) -> int:
        j = i + self._length if i < 0 else i
        if not 0 <= j < self._length: raise RangeError(i, self._length)
        return int(j)

    def _range(self, item: Union[slice, Interval]) -> tuple[int, int]:
        if isinstance(item, slice):
            interval = Interval.from_slice(item, length=self._length)
            start, stop = interval.start, interval.end
        else:
            start, stop = item.start, item.end
        if not (0 <= start <= self._length and 0 <= stop <= self._length): raise RangeError(item, self._length)
        return start, max(start, stop)

    def _codes(self, value) -> np.ndarray:
        if isinstance(value, Seq) and value._alphabet is self._alphabet: return value.encoded
        return self._alphabet.codes_from(value)

    # Properties ---------------------------------------------------------------------------------------------------
    @property
    def alphabet(self) -> 'Alphabet':
        """Returns the alphabet used for encoding/decoding."""
        return self._alphabet

    @property
    def encoded(self) -> np.ndarray:
        """Returns the symbol codes as a new unpacked ``uint8`` array."""
        return self._buffer.read(self._offset, self._length)

    @property
    def bits_per_symbol(self) -> int: return self._buffer.bits
    @property
    def is_shared(self) -> bool: return self._buffer.refs > 1
    @property
    def capacity(self) -> int:
        """Number of symbols this handle can grow to without reallocating."""
        return self._buffer.capacity - self._offset
    @property
    def nbytes(self) -> int:
        """Number of bytes the packed symbols occupy."""
        return (self._length * self._buffer.bits + 7) // 8

    # Dunder methods -----------------------------------------------------------------------------------------------
    def __len__(self): return self._length
    def __bool__(self): return self._length > 0
    def __bytes__(self) -> bytes: return self._alphabet.decode(self.encoded)
    def __str__(self): return self.__bytes__().decode('ascii')
    def __iter__(self) -> Iterator[str]: return iter(str(self))
    def __reversed__(self) -> Iterator[str]: return reversed(str(self))
    def __copy__(self) -> 'Seq': return self._view(0, self._length)
    def __deepcopy__(self, memo) -> 'Seq': return self.copy()
    __hash__ = None

    def __repr__(self):
        if self._length <= 14: return str(self)
        # Decode only the parts we show
        head = self._alphabet.decode(self._buffer.read(self._offset, 7)).decode('ascii')
        tail = self._alphabet.decode(self._buffer.read(self._offset + self._length - 7, 7)).decode('ascii')
        return f"{head}...{tail}"

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, Seq): return False
        if self._alphabet is not other._alphabet or self._length != other._length: return False
        return np.array_equal(self.encoded, other.encoded)

    def __contains__(self, item):
        from seqpack.engines.search import search_index
        return search_index(self, item) >= 0

    def __add__(self, other) -> 'Seq':
        if not isinstance(other, (Seq, str, bytes)): return NotImplemented
        out = self.copy()
        out.extend(other)
        return out

    def __iadd__(self, other) -> 'Seq':
        self.extend(other)
        return self

    def __mul__(self, other: int) -> 'Seq':
        if not isinstance(other, int): return NotImplemented
        if other <= 0: return self._alphabet.empty_seq()
        return self._alphabet.new_seq(np.tile(self.encoded, other))

    def __rmul__(self, other: int) -> 'Seq': return self.__mul__(other)

    # Comparisons (Lexicographical on symbols, not codes)
    def __lt__(self, other):
        if not isinstance(other, Seq): return NotImplemented
        return bytes(self) < bytes(other)

    def __le__(self, other):
        if not isinstance(other, Seq): return NotImplemented
        return bytes(self) <= bytes(other)

    def __gt__(self, other):
        if not isinstance(other, Seq): return NotImplemented
        return bytes(self) > bytes(other)

    def __ge__(self, other):
        if not isinstance(other, Seq): return NotImplemented
        return bytes(self) >= bytes(other)

    def __getitem__(self, item: Union[slice, int, Interval]) -> Union[str, 'Seq']:
        """Extracts a symbol by index, or a subsequence by slice or ``Interval``.

        Unit-step slices and forward intervals are O(1) views sharing storage with this
        sequence. Other steps copy. An ``Interval`` with ``strand == -1`` returns the
        reverse complement of the range.

        Args:
            item: An integer index, a Python slice, or an ``Interval``.

        Returns:
            A one-character symbol for an index, otherwise a ``Seq``.

        Raises:
            RangeError: If the index or range lies outside the sequence.

        Examples:
            >>> seq = Alphabet.DNA.seq_from('ATGCGA')
            >>> seq[-1]
            'A'
            >>> seq[Interval(1, 4, -1)]  # reverse complement
            GCA
        """
        if isinstance(item, (int, np.integer)):
            return self._alphabet.decode_symbol(self._buffer.get(self._offset + self._index(item)))
        if isinstance(item, slice):
            if item.step not in (None, 1): return self._alphabet.new_seq(self.encoded[item])
            return self._view(*self._range(item))
        if isinstance(item, Interval):
            view = self._view(*self._range(item))
            return view.reverse_complement() if item.strand == Strand.REVERSE else view
        raise TypeError(f"Seq indices must be integers, slices or Intervals, not {type(item).__name__}")

    def __setitem__(self, item: Union[int, slice], value):
        """Replaces a symbol, or a unit-step range with any number of symbols."""
        if isinstance(item, (int, np.integer)):
            i = self._index(item)
            code = self._alphabet.encode_symbol(value)
            self._detach()
            self._buffer.set(self._offset + i, code)
        elif isinstance(item, slice) and item.step in (None, 1):
            codes = self._codes(value)
            self._splice(*self._range(item), codes)
        else:
            raise TypeError(f"Seq assignment indices must be integers or unit-step slices, not {item!r}")

    def __delitem__(self, item: Union[int, slice]):
        if isinstance(item, (int, np.integer)):
            i = self._index(item)
            self._splice(i, i + 1, _EMPTY)
        elif isinstance(item, slice) and item.step in (None, 1):
            self._splice(*self._range(item), _EMPTY)
        else:
            raise TypeError(f"Seq deletion indices must be integers or unit-step slices, not {item!r}")

    # Mutation -----------------------------------------------------------------------------------------------------
    def append(self, symbol: str):
        """Appends a single symbol in amortized O(1)."""
        code = self._alphabet.encode_symbol(symbol)
        self._detach()
        self._buffer.reserve(self._offset + self._length + 1)
        self._buffer.set(self._offset + self._length, code)
        self._length += 1

    def appendleft(self, symbol: str):
        self._splice(0, 0, np.array([self._alphabet.encode_symbol(symbol)], dtype=np.uint8))

    def insert(self, index: int, symbol: str):
        """Inserts a symbol before ``index``; ``index == len(self)`` appends.

        Raises:
            RangeError: If ``index`` is outside ``[-len, len]``.
        """
        i = index + self._length if index < 0 else index
        if not 0 <= i <= self._length: raise RangeError(index, self._length)
        self._splice(i, i, np.array([self._alphabet.encode_symbol(symbol)], dtype=np.uint8))

    def pop(self, index: int = -1) -> str:
        """Removes and returns the symbol at ``index`` (default last).

        Raises:
            RangeError: If the sequence is empty or the index is out of bounds.
        """
        i = self._index(index)
        symbol = self[i]
        if i == self._length - 1:
            self._detach()
            self._length -= 1
        else:
            self._splice(i, i + 1, _EMPTY)
        return symbol

    def popleft(self) -> str: return self.pop(0)

    def extend(self, values):
        """Appends symbols from another sequence, text, or codes."""
        codes = self._codes(values)
        self._detach()
        self._buffer.reserve(self._offset + self._length + len(codes))
        self._buffer.write(codes, self._offset + self._length)
        self._length += len(codes)

    def resize(self, length: int):
        """Truncates or grows to ``length`` symbols; new positions hold code 0 (the gap, where there is one)."""
        if length < 0: raise ValueError(f"Length must be non-negative, not {length}")
        if length <= self._length:
            self._detach()
            self._length = length
        else:
            self.extend(np.zeros(length - self._length, dtype=np.uint8))

    def clear(self):
        """Removes all symbols, releasing shared storage without copying it."""
        if self._buffer.refs > 1: self._rebind(SeqBuffer.from_codes(_EMPTY, self._buffer.bits))
        self._length = 0

    def reverse_inplace(self):
        self._detach()
        self._buffer.write(self.encoded[::-1], self._offset)

    def complement_inplace(self):
        """Complements every symbol in place.

        Raises:
            AlphabetError: If the alphabet has no complement.
        """
        codes = self._alphabet.complement_codes(self.encoded)
        self._detach()
        self._buffer.write(codes, self._offset)

    def reverse_complement_inplace(self):
        codes = self._alphabet.complement_codes(self.encoded)
        self._detach()
        self._buffer.write(codes[::-1], self._offset)

    def ungap_inplace(self):
        """Removes every gap symbol in place."""
        if (gap := self._alphabet.gap) is None: return
        codes = self.encoded
        if not (keep := codes != gap).all():
            self._detach()
            codes = codes[keep]
            self._buffer.write(codes, self._offset)
            self._length = len(codes)

    # Copies -------------------------------------------------------------------------------------------------------
    def copy(self) -> 'Seq':
        """Returns an independent sequence with its own compact storage."""
        return self._alphabet.new_seq(self.encoded)

    def subseq(self, start: int, stop: int = None) -> 'Seq':
        """Returns a view of ``[start, stop)``. Same as ``seq[start:stop]``."""
        return self[start:stop]

    def reverse(self) -> 'Seq': return self._alphabet.new_seq(self.encoded[::-1])
    def complement(self) -> 'Seq': return self._alphabet.new_seq(self._alphabet.complement_codes(self.encoded))

    def reverse_complement(self) -> 'Seq':
        """Returns the reverse complement.

        Examples:
            >>> Alphabet.DNA.seq_from('AAGR').reverse_complement()
            YCTT
        """
        return self._alphabet.new_seq(self._alphabet.complement_codes(self.encoded)[::-1])

    def ungap(self) -> 'Seq':
        out = self.copy()
        out.ungap_inplace()
        return out

    def convert(self, alphabet: 'Alphabet') -> 'Seq':
        """Returns this sequence re-encoded in another alphabet of the same family (e.g. DNA to RNA).

        Raises:
            AlphabetError: If the alphabets are unrelated.
            DecodeError: If a symbol has no counterpart in ``alphabet``.
        """
        return alphabet.new_seq(alphabet.recode(self.encoded, self._alphabet))

    def tobytes(self) -> bytes:
        """Decodes the sequence to raw bytes."""
        return self.__bytes__()

    def tolist(self) -> list[str]: return list(str(self))


# Constants ------------------------------------------------------------------------------------------------------------
_EMPTY = np.empty(0, dtype=np.uint8)


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _pack_kernel(codes, words, offset, bits):
    per_word = 8 // bits
    mask = (1 << bits) - 1
    for i in range(len(codes)):
        pos = offset + i
        word_idx = pos // per_word
        shift = (per_word - 1 - (pos % per_word)) * bits
        word = int(words[word_idx]) & ~(mask << shift)
        words[word_idx] = (word | ((int(codes[i]) & mask) << shift)) & 0xFF


@jit(nopython=True, cache=True, nogil=True)
def _unpack_kernel(words, offset, length, bits):
    per_word = 8 // bits
    mask = (1 << bits) - 1
    out = np.empty(length, dtype=np.uint8)
    for i in range(length):
        pos = offset + i
        shift = (per_word - 1 - (pos % per_word)) * bits
        out[i] = (int(words[pos // per_word]) >> shift) & mask
    return out
