"""
Translation of nucleotide sequences into amino acid sequences with NCBI genetic codes.

Each genetic code is expanded to a table over every triple of 4-bit nucleotide codes, so an
ambiguous codon translates to the amino acid all of its readings agree on (``GCN`` is ``A``,
``TAR`` is ``*``) and is otherwise reported as ambiguous.
"""
from typing import ClassVar, Final, Union
import logging

import numpy as np

from seqpack.core.alphabet import Alphabet, AlphabetError
from seqpack.containers.seq import Seq
from seqpack.lib.resources import jit


log = logging.getLogger(__name__)


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class TranslationError(ValueError):
    """Raised when a sequence cannot be translated."""


# Classes --------------------------------------------------------------------------------------------------------------
class GeneticCode:
    """
    A genetic code table for translation.

    Args:
        table: 64 amino acid symbols for the codons in ``TCAG`` order (``TTT``, ``TTC``, ``TTA``, ...).
        name: Display name.
        ncbi_id: The NCBI translation table number, if any.

    Raises:
        ValueError: If the table does not hold 64 symbols.
        DecodeError: If the table holds a symbol that is not an amino acid.

    Examples:
        >>> GeneticCode.STANDARD['AUG']
        'M'
        >>> GeneticCode.from_ncbi(2)['AGA']
        '*'
    """
    __slots__ = ('_name', '_ncbi_id', '_table', '_codons')
    AMBIGUOUS: Final = Alphabet.INVALID
    _NUCLEOTIDES = Alphabet.DNA
    _AMINO = Alphabet.AMINO
    _CACHE: ClassVar[dict[int, 'GeneticCode']] = {}
    STANDARD: ClassVar['GeneticCode']
    BACTERIA: ClassVar['GeneticCode']

    def __init__(self, table: bytes, name: str = 'Custom', ncbi_id: int = None):
        if len(table) != 64: raise ValueError(f"A genetic code needs 64 codons, not {len(table)}")
        self._name = name
        self._ncbi_id = ncbi_id
        self._table = table
        self._codons = self._expand(self._AMINO.encode(table))

    @classmethod
    def _expand(cls, residues: np.ndarray) -> np.ndarray:
        """Maps every triple of 4-bit nucleotide codes to a residue code, or ``AMBIGUOUS``."""
        # sel[code, i] is 1 where nucleotide code may read as the i-th base of TCAG
        bits = [cls._NUCLEOTIDES.encode_symbol(b) for b in 'TCAG']
        sel = np.array([[int(code & bit != 0) for bit in bits] for code in range(16)], dtype=np.int64)
        distinct = np.unique(residues)
        onehot = (residues[:, None] == distinct[None, :]).astype(np.int64).reshape(4, 4, 4, len(distinct))
        counts = np.einsum('xi,yj,zl,ijlr->xyzr', sel, sel, sel, onehot)
        readings = np.einsum('xi,yj,zl->xyz', sel, sel, sel)
        agreed = (counts == readings[..., None]) & (readings[..., None] > 0)
        codons = np.full((16, 16, 16), cls.AMBIGUOUS, dtype=Alphabet.DTYPE)
        hit = agreed.any(axis=-1)
        codons[hit] = distinct[agreed.argmax(axis=-1)][hit]
        return codons.ravel()

    @classmethod
    def from_ncbi(cls, ncbi_id: int) -> 'GeneticCode':
        """Returns the NCBI genetic code with the given translation table number.

        Raises:
            KeyError: If the table number is unknown.
        """
        if (cached := cls._CACHE.get(ncbi_id)) is None:
            if (entry := _NCBI_TABLES.get(ncbi_id)) is None:
                raise KeyError(f"Unknown NCBI translation table {ncbi_id}; choose from {sorted(_NCBI_TABLES)}")
            cls._CACHE[ncbi_id] = cached = cls(entry[1], entry[0], ncbi_id)
            log.debug('Expanded NCBI translation table %d (%s)', ncbi_id, entry[0])
        return cached

    @staticmethod
    def ncbi_tables() -> dict[int, str]:
        """Returns the available NCBI translation table numbers and their names."""
        return {ncbi_id: name for ncbi_id, (name, _) in _NCBI_TABLES.items()}

    @property
    def name(self) -> str: return self._name
    @property
    def ncbi_id(self): return self._ncbi_id
    @property
    def table(self) -> bytes: return self._table

    @property
    def stops(self) -> np.ndarray:
        """Boolean array indicating stop codons (size 64, ``TCAG`` order)."""
        return np.frombuffer(self._table, dtype=Alphabet.DTYPE) == ord('*')

    def __repr__(self):
        prefix = f'{self._ncbi_id}. ' if self._ncbi_id is not None else ''
        return f"<GeneticCode {prefix}{self._name}>"

    def __getitem__(self, codon: Union[str, bytes]) -> str:
        """Returns the amino acid symbol for a DNA or RNA codon, ``X`` if its readings disagree."""
        codes = _nucleotide_codes(codon)
        if len(codes) != 3: raise TranslationError(f"A codon has 3 bases, not {len(codes)}")
        residue = int(self._codons[_codon_index(codes, 0)])
        return self._AMINO.decode_symbol(self._AMINO.wildcard if residue == self.AMBIGUOUS else residue)

    def translate(self, seq, allow_ambiguous: bool = True, frame: int = 0, to_stop: bool = False) -> Seq:
        """
        Translates a nucleotide sequence to amino acids.

        Args:
            seq: A ``Seq`` of any nucleotide alphabet, a ``ReferenceSeq``, or DNA or RNA text.
            allow_ambiguous: Translate codons whose readings disagree (including gapped codons)
                to ``X``; otherwise raise.
            frame: The reading frame (0, 1 or 2). Trailing bases that do not fill a codon are ignored.
            to_stop: If True, translation terminates before the first stop codon.

        Returns:
            An ``Alphabet.AMINO`` sequence.

        Raises:
            TranslationError: If the sequence holds no complete codon, or an ambiguous codon
                is met with ``allow_ambiguous=False``.
            AlphabetError: If the sequence is not a nucleotide sequence.

        Examples:
            >>> GeneticCode.STANDARD.translate(Alphabet.RNA.seq_from('AUGGCNUAA'))
            MA*
        """
        if frame not in (0, 1, 2): raise ValueError(f"Frame must be 0, 1 or 2, not {frame}")
        codes = _nucleotide_codes(seq)
        if (n_codons := (len(codes) - frame) // 3) < 1:
            raise TranslationError(f'Cannot translate a sequence of length {len(codes)} in frame {frame}')
        residues = _translate_kernel(codes, self._codons, frame, n_codons)
        if to_stop and (stops := np.flatnonzero(residues == self._AMINO.encode_symbol('*'))).size:
            residues = residues[:stops[0]]
        if (ambiguous := np.flatnonzero(residues == self.AMBIGUOUS)).size:
            if not allow_ambiguous:
                i = frame + 3 * int(ambiguous[0])
                codon = self._NUCLEOTIDES.decode(codes[i:i + 3]).decode('ascii')
                raise TranslationError(f"Ambiguous codon {codon} at position {i}")
            residues[ambiguous] = self._AMINO.wildcard
        return self._AMINO.new_seq(residues)


# Functions ------------------------------------------------------------------------------------------------------------
def _nucleotide_codes(seq) -> np.ndarray:
    if (alphabet := getattr(seq, 'alphabet', None)) is not None and not alphabet.is_nucleic:
        raise AlphabetError(f"Cannot translate {alphabet} sequences")
    if isinstance(seq, str): seq = seq.encode(Alphabet.ENCODING, errors='replace')
    if isinstance(seq, bytes) and b'U' in seq.upper():  # RNA text
        return Alphabet.DNA.recode(Alphabet.RNA.encode(seq), Alphabet.RNA)
    return Alphabet.DNA.codes_from(seq)


def _codon_index(codes: np.ndarray, i: int) -> int:
    return (int(codes[i]) << 8) | (int(codes[i + 1]) << 4) | int(codes[i + 2])


def translate(seq, code: GeneticCode = None, allow_ambiguous: bool = True, frame: int = 0,
              to_stop: bool = False) -> Seq:
    """
    Translates a nucleotide sequence to amino acids with a genetic code (standard by default).

    Examples:
        >>> translate(Alphabet.RNA.seq_from('AUGUUUUAG'))
        MF*
        >>> translate(Alphabet.RNA.seq_from('AUGNNN'), allow_ambiguous=False)
        Traceback (most recent call last):
        ...
        seqpack.engines.translate.TranslationError: Ambiguous codon NNN at position 3
    """
    return (code or GeneticCode.STANDARD).translate(seq, allow_ambiguous, frame, to_stop)


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _translate_kernel(codes, codons, frame, n_codons):
    out = np.empty(n_codons, dtype=np.uint8)
    for i in range(n_codons):
        j = frame + 3 * i
        out[i] = codons[(int(codes[j]) << 8) | (int(codes[j + 1]) << 4) | int(codes[j + 2])]
    return out


# Constants ------------------------------------------------------------------------------------------------------------
_NCBI_TABLES: Final = {
    1: ('The Standard Code', b'FFLLSSSSYY**CC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG'),
    2: ('The Vertebrate Mitochondrial Code', b'FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIMMTTTTNNKKSS**VVVVAAAADDEEGGGG'),
    3: ('The Yeast Mitochondrial Code', b'FFLLSSSSYY**CCWWTTTTPPPPHHQQRRRRIIMMTTTTNNKKSSRRVVVVAAAADDEEGGGG'),
    4: ('The Mold, Protozoan, and Coelenterate Mitochondrial Code and the Mycoplasma/Spiroplasma Code',
        b'FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG'),
    5: ('The Invertebrate Mitochondrial Code', b'FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIMMTTTTNNKKSSSSVVVVAAAADDEEGGGG'),
    6: ('The Ciliate, Dasycladacean and Hexamita Nuclear Code',
        b'FFLLSSSSYYQQCC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG'),
    9: ('The Echinoderm and Flatworm Mitochondrial Code',
        b'FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIIMTTTTNNNKSSSSVVVVAAAADDEEGGGG'),
    10: ('The Euplotid Nuclear Code', b'FFLLSSSSYY**CCCWLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG'),
    11: ('The Bacterial, Archaeal and Plant Plastid Code',
         b'FFLLSSSSYY**CC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG'),
    12: ('The Alternative Yeast Nuclear Code', b'FFLLSSSSYY**CC*WLLLSPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG'),
    13: ('The Ascidian Mitochondrial Code', b'FFLLSSSSYY**CCWWLLLLPPPPHHQQRRRRIIMMTTTTNNKKSSGGVVVVAAAADDEEGGGG'),
    14: ('The Alternative Flatworm Mitochondrial Code',
         b'FFLLSSSSYYY*CCWWLLLLPPPPHHQQRRRRIIIMTTTTNNNKSSSSVVVVAAAADDEEGGGG'),
}

GeneticCode.STANDARD = GeneticCode.from_ncbi(1)
GeneticCode.BACTERIA = GeneticCode.from_ncbi(11)
