"""
Bit-packed biological sequences with copy-on-write sharing, k-mers, ambiguity-aware exact and
approximate search, and barcode demultiplexing.

Examples:
    >>> from seqpack import Alphabet, search
    >>> seq = Alphabet.DNA.seq_from('ACAGCGTAGCT')
    >>> search(seq, 'AGC')
    2:5(.)
"""
import logging

from seqpack.core.alphabet import Alphabet, AlphabetError, DecodeError
from seqpack.core.interval import Interval, Strand, NOT_FOUND
from seqpack.containers.seq import Seq, RangeError
from seqpack.containers.kmer import Kmer, EachKmer, each, canonical
from seqpack.containers.reference import ReferenceSeq
from seqpack.engines.search import ExactSearchQuery, search, rsearch, search_index, rsearch_index
from seqpack.engines.approx import (ApproximateSearchQuery, approxsearch, approxrsearch, approxsearch_index,
                                    approxrsearch_index, hamming_distance, levenshtein_distance)
from seqpack.engines.demultiplex import Demultiplexer, Distance, BarcodeCall, NO_MATCH, ConfigurationError, demultiplex
from seqpack.engines.composition import Site, Composition, composition, count_sites, count_sites_windowed
from seqpack.engines.translate import GeneticCode, TranslationError, translate
from seqpack.lib.resources import RESOURCES

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'Alphabet', 'AlphabetError', 'DecodeError', 'Interval', 'Strand', 'NOT_FOUND', 'Seq', 'RangeError', 'Kmer',
    'EachKmer', 'each', 'canonical', 'ExactSearchQuery', 'search', 'rsearch', 'search_index', 'rsearch_index',
    'ApproximateSearchQuery', 'approxsearch', 'approxrsearch', 'approxsearch_index', 'approxrsearch_index',
    'hamming_distance', 'levenshtein_distance', 'Demultiplexer', 'Distance', 'BarcodeCall', 'NO_MATCH',
    'ConfigurationError', 'demultiplex', 'Site', 'Composition', 'composition', 'count_sites',
    'count_sites_windowed', 'ReferenceSeq', 'GeneticCode', 'TranslationError', 'translate', 'RESOURCES'
]
