import pytest
from seqpack.core.alphabet import Alphabet
from seqpack.core.interval import Interval
from seqpack.containers.kmer import Kmer, each
from seqpack.engines.composition import Site, Composition, composition, count_sites, count_sites_windowed


def dna(text):
    return Alphabet.DNA.seq_from(text)


class TestComposition:
    def test_symbols(self):
        comp = composition(dna('ACGAG'))
        assert comp['A'] == 2
        assert comp['G'] == 2
        assert comp['C'] == 1
        assert comp['T'] == 0
        assert isinstance(comp, Composition)

    def test_kmers(self):
        comp = composition(each(dna('ACGACG'), 3))
        assert comp[Kmer.from_str('ACG')] == 2
        assert comp[Kmer.from_str('CGA')] == 1
        assert comp[Kmer.from_str('TTT')] == 0

    def test_sequences(self):
        comp = composition([dna('ACG'), dna('ACG'), dna('TT')])
        assert comp['ACG'] == 2
        assert comp['TT'] == 1

    def test_merge(self):
        comp = composition(dna('AAC')) + composition(dna('CT'))
        assert comp == Composition({'A': 2, 'C': 2, 'T': 1})


class TestSites:
    def test_single_sequence(self):
        seq = dna('ACGN-R-T')
        assert count_sites(Site.CERTAIN, seq) == 4
        assert count_sites(Site.GAP, seq) == 2
        assert count_sites('ambiguous', seq) == 2

    def test_match_mismatch(self):
        a, b = dna('ATCGATCG'), dna('AAGGTTCG')
        assert count_sites(Site.MATCH, a, b) == 5
        assert count_sites(Site.MISMATCH, a, b) == 3

    def test_pairwise_single_sites(self):
        a, b = dna('ACGN'), dna('A-GT')
        assert count_sites(Site.CERTAIN, a, b) == 2
        assert count_sites(Site.GAP, a, b) == 0

    def test_requires_two_sequences(self):
        with pytest.raises(ValueError):
            count_sites(Site.MATCH, dna('ACGT'))

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            count_sites(Site.MATCH, dna('ACGT'), dna('ACG'))

    def test_windowed(self):
        counts = count_sites_windowed(Site.MATCH, dna('ATCGATCG'), dna('AAGGTTCG'), window=3, step=1)
        assert len(counts) == 6
        assert counts[0] == (Interval(0, 3), 1)
        assert counts[-1] == (Interval(5, 8), 3)
