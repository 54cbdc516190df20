"""Symbol composition and site counting over sequences."""
from collections import Counter
from enum import Enum
from typing import Iterable, Union

import numpy as np

from seqpack.core.interval import Interval
from seqpack.containers.seq import Seq
from seqpack.containers.kmer import Kmer


# Classes --------------------------------------------------------------------------------------------------------------
class Site(Enum):
    """
    Kinds of sequence positions that can be counted.

    ``CERTAIN``, ``GAP`` and ``AMBIGUOUS`` describe a single sequence (with two sequences,
    positions where both qualify are counted); ``MATCH`` and ``MISMATCH`` compare two aligned
    sequences symbol by symbol.
    """
    CERTAIN = 'certain'
    GAP = 'gap'
    AMBIGUOUS = 'ambiguous'
    MATCH = 'match'
    MISMATCH = 'mismatch'


class Composition(Counter):
    """
    Counts of symbols (or k-mers, or sequences). Missing keys count as 0.

    Examples:
        >>> comp = composition(Alphabet.DNA.seq_from('ACGAG'))
        >>> comp['A'], comp['T']
        (2, 0)
    """
    def __repr__(self):
        items = ', '.join(f'{k}: {v}' for k, v in self.most_common())
        return f"Composition({{{items}}})"


# Functions ------------------------------------------------------------------------------------------------------------
def composition(obj: Union[Seq, Kmer, Iterable]) -> Composition:
    """
    Counts the composition of a sequence or of a collection.

    Args:
        obj: A ``Seq`` or ``Kmer`` (counted per symbol), or an iterable of sequences, k-mers or
            ``(position, Kmer)`` pairs from ``each`` (counted per item; sequences by their text).

    Returns:
        A ``Composition``.
    """
    if isinstance(obj, (Seq, Kmer)):
        alphabet = obj.alphabet
        counts = np.bincount(obj.encoded, minlength=len(alphabet))
        return Composition({alphabet.decode_symbol(c): int(n) for c, n in enumerate(counts) if n})
    comp = Composition()
    for item in obj:
        if isinstance(item, tuple) and len(item) == 2 and isinstance(item[1], Kmer): item = item[1]
        elif isinstance(item, Seq): item = str(item)
        comp[item] += 1
    return comp


def _site_mask(site: Site, a: Seq, b: Seq = None) -> np.ndarray:
    alphabet = a.alphabet
    x = a.encoded
    if b is None:
        if site in (Site.MATCH, Site.MISMATCH): raise ValueError(f'Counting {site.value} sites requires two sequences')
        return _single_mask(site, x, alphabet)
    if len(a) != len(b): raise ValueError(f'Sequences must be aligned (lengths {len(a)} != {len(b)})')
    y = alphabet.codes_from(b)
    if site is Site.MATCH: return x == y
    if site is Site.MISMATCH: return x != y
    return _single_mask(site, x, alphabet) & _single_mask(site, y, alphabet)


def _single_mask(site: Site, x: np.ndarray, alphabet) -> np.ndarray:
    gap = (x == alphabet.gap) if alphabet.gap is not None else np.zeros(len(x), dtype=bool)
    if site is Site.GAP: return gap
    ambiguous = alphabet.ambiguous[x]
    if site is Site.AMBIGUOUS: return ambiguous
    return ~(gap | ambiguous)


def count_sites(site: Union[Site, str], a: Seq, b: Seq = None) -> int:
    """
    Counts the positions of a given kind in one sequence, or in two aligned sequences.

    Args:
        site: The kind of site.
        a: A sequence.
        b: An aligned sequence of the same length (required for ``MATCH`` and ``MISMATCH``).

    Raises:
        ValueError: If the sequences differ in length, or a comparison site is given one sequence.

    Examples:
        >>> count_sites(Site.MATCH, Alphabet.DNA.seq_from('ATCGATCG'), Alphabet.DNA.seq_from('AAGGTTCG'))
        5
    """
    return int(_site_mask(Site(site), a, b).sum())


def count_sites_windowed(site: Union[Site, str], a: Seq, b: Seq = None, window: int = 100,
                         step: int = 1) -> list[tuple[Interval, int]]:
    """Counts sites in each full sliding window, returning ``(window interval, count)`` pairs."""
    if window < 1 or step < 1: raise ValueError('Window and step must be positive')
    cumulative = np.concatenate(([0], np.cumsum(_site_mask(Site(site), a, b))))
    return [(Interval(i, i + window), int(cumulative[i + window] - cumulative[i]))
            for i in range(0, len(a) - window + 1, step)]
