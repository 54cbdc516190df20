import numpy as np
import pytest
from seqpack.core.alphabet import Alphabet
from seqpack.core.interval import Interval, NOT_FOUND
from seqpack.containers.kmer import Kmer
from seqpack.containers.seq import RangeError
from seqpack.engines.search import ExactSearchQuery, search, rsearch, search_index, rsearch_index


@pytest.fixture
def seq():
    return Alphabet.DNA.seq_from('ACAGCGTAGCT')


def naive_search(text, query, compat):
    m = len(query)
    for i in range(len(text) - m + 1):
        if all(compat[text[i + j], query[j]] for j in range(m)):
            return i
    return -1


class TestExactSearch:
    def test_forward(self, seq):
        assert search(seq, 'AGC') == Interval(2, 5)
        assert search(seq, 'AGC', 3) == Interval(7, 10)
        assert search(seq, 'AGC', 8) == NOT_FOUND

    def test_reverse(self, seq):
        assert rsearch(seq, 'AGC') == Interval(7, 10)
        assert rsearch(seq, 'AGC', 9) == Interval(2, 5)
        assert rsearch(seq, 'AGC', 4) == NOT_FOUND

    def test_single_symbol(self, seq):
        assert search(seq, 'G') == Interval(3, 4)
        assert rsearch(seq, 'G') == Interval(8, 9)
        assert search_index(seq, Alphabet.DNA.encode_symbol('T')) == 6

    def test_not_found(self, seq):
        assert search(seq, 'TTT') == NOT_FOUND
        assert not search(seq, 'TTT').found
        assert search_index(seq, 'TTT') == -1
        assert rsearch_index(seq, 'TTT') == -1

    def test_query_longer_than_text(self):
        assert search(Alphabet.DNA.seq_from('AC'), 'ACG') == NOT_FOUND

    def test_empty_query(self, seq):
        assert search(seq, '', 4) == Interval(4, 4)
        assert rsearch(seq, '') == Interval(11, 11)

    def test_ambiguous_query(self, seq):
        assert search(seq, 'CNT') == Interval(4, 7)
        assert search(seq, 'RGC') == Interval(2, 5)

    def test_ambiguous_text(self):
        text = Alphabet.DNA.seq_from('ACNNGT')
        assert search(text, 'TTG') == Interval(2, 5)

    def test_seq_and_kmer_queries(self, seq):
        assert search(seq, Alphabet.DNA_2BIT.seq_from('TAG')) == Interval(6, 9)
        assert search(seq, Kmer.from_str('GCT')) == Interval(8, 11)

    def test_out_of_range_origin(self, seq):
        with pytest.raises(RangeError):
            search(seq, 'A', 12)
        with pytest.raises(RangeError):
            rsearch(seq, 'A', -1)

    def test_text_must_have_alphabet(self):
        with pytest.raises(TypeError):
            search('ACGT', 'A')


class TestExactSearchQuery:
    def test_prepared_matches_unprepared(self, seq):
        query = ExactSearchQuery('AGC')
        assert query.search(seq) == search(seq, 'AGC')
        assert query.rsearch(seq) == rsearch(seq, 'AGC')
        assert search(seq, query, 3) == Interval(7, 10)

    def test_find_all(self, seq):
        query = ExactSearchQuery('AG')
        hits, hit = [], query.search(seq)
        while hit.found:
            hits.append(hit.start)
            hit = query.search(seq, hit.start + 1)
        assert hits == [2, 7]

    def test_cached_per_alphabet(self):
        query = ExactSearchQuery('ACG')
        assert query.search(Alphabet.DNA.seq_from('TACG')) == Interval(1, 4)
        assert query.search(Alphabet.DNA_2BIT.seq_from('TTACG')) == Interval(2, 5)
        assert query.search(Alphabet.RNA.seq_from('ACG')) == Interval(0, 3)

    def test_cached_per_member_sets(self):
        literal = Alphabet('LITERAL', b'-ACMGRSVTWYHKDBN', 4, 'dna', gap=b'-')
        query = ExactSearchQuery('NN')
        assert query.search(literal.seq_from('ACGT')) == NOT_FOUND
        assert query.search(Alphabet.DNA.seq_from('ACGT')) == Interval(0, 2)

    @pytest.mark.parametrize('seed', range(5))
    def test_agrees_with_naive_scan(self, seed):
        rng = np.random.default_rng(seed)
        alpha = Alphabet.DNA
        text_codes = rng.choice([1, 2, 4, 8, 15, 5], size=300)
        text = alpha.seq_from(text_codes)
        for m in (1, 2, 3, 5):
            query_codes = rng.choice([1, 2, 4, 8, 10], size=m)
            query = alpha.seq_from(query_codes)
            expected = naive_search(text_codes, query_codes, alpha.compatibility)
            assert search_index(text, query) == expected
