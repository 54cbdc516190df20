import pytest
from seqpack.core.alphabet import Alphabet
from seqpack.engines.demultiplex import (Demultiplexer, Distance, BarcodeCall, NO_MATCH, ConfigurationError,
                                         demultiplex)


BARCODES = ['ATGG', 'CAGA', 'GGAA', 'TACG']


def dna(text):
    return Alphabet.DNA.seq_from(text)


@pytest.fixture
def hamming():
    return Demultiplexer(BARCODES, max_errors=1, distance=Distance.HAMMING)


@pytest.fixture
def levenshtein():
    return Demultiplexer(BARCODES, max_errors=1, distance='levenshtein')


class TestConstruction:
    def test_properties(self, hamming):
        assert len(hamming) == 4
        assert hamming.max_errors == 1
        assert hamming.distance is Distance.HAMMING
        assert str(hamming[2]) == 'GGAA'
        assert 'hamming' in repr(hamming)

    def test_barcodes_too_close(self):
        with pytest.raises(ConfigurationError, match='1 apart'):
            Demultiplexer(['AAAA', 'AAAT'], max_errors=1)

    def test_zero_errors_only_needs_distinct(self):
        Demultiplexer(['AAAA', 'AAAT'], max_errors=0)

    def test_unequal_hamming_lengths(self):
        with pytest.raises(ConfigurationError):
            Demultiplexer(['AAAA', 'CCCCC'], max_errors=1)

    def test_empty(self):
        with pytest.raises(ConfigurationError):
            Demultiplexer([])

    def test_negative_errors(self):
        with pytest.raises(ValueError):
            Demultiplexer(BARCODES, max_errors=-1)

    def test_levenshtein_separation(self):
        # Hamming distance 4, but one shift apart
        with pytest.raises(ConfigurationError):
            Demultiplexer(['ACGTAC', 'CGTACG'], max_errors=1, distance=Distance.LEVENSHTEIN)
        Demultiplexer(['ACGTAC', 'CGTACG'], max_errors=1, distance=Distance.HAMMING)


class TestHamming:
    def test_exact(self, hamming):
        assert hamming.classify(dna('ATGGCGNT')) == BarcodeCall(0, 0)

    def test_one_substitution(self, hamming):
        assert hamming.classify(dna('CAGGCGNT')) == BarcodeCall(1, 1)

    def test_no_match(self, hamming):
        assert hamming.classify(dna('TGACCGNT')) == NO_MATCH
        assert not hamming.classify(dna('TGACCGNT')).found

    def test_fallback(self, hamming):
        assert hamming.classify(dna('TGACCGNT'), fallback=True) == BarcodeCall(2, 2)

    def test_read_n_costs_one_error(self, hamming):
        assert hamming.classify(dna('ANGGTTTT')) == BarcodeCall(0, 1)
        assert hamming.classify(dna('NNGGTTTT')) == NO_MATCH

    def test_text_and_other_alphabets(self, hamming):
        assert hamming.classify('GGAACCCC') == BarcodeCall(2, 0)
        assert hamming.classify(Alphabet.DNA_2BIT.seq_from('TACGA')) == BarcodeCall(3, 0)

    def test_short_read(self, hamming):
        assert hamming.classify(dna('ATG')) == NO_MATCH
        assert hamming.classify(dna('ATG'), fallback=True) == BarcodeCall(0, 1)

    def test_module_function(self, hamming):
        assert demultiplex(hamming, dna('CAGGCGNT')) == hamming.classify(dna('CAGGCGNT'))


class TestLevenshtein:
    def test_exact(self, levenshtein):
        assert levenshtein.classify(dna('ATGGCGNT')) == BarcodeCall(0, 0)

    def test_insertion_in_read(self, levenshtein):
        assert levenshtein.classify(dna('CAAGACCC')) == BarcodeCall(1, 1)

    def test_deletion_in_read(self, levenshtein):
        assert levenshtein.classify(dna('TCGTTTTT')) == BarcodeCall(3, 1)

    def test_substitution(self, levenshtein):
        assert levenshtein.classify(dna('GGATTTTT')) == BarcodeCall(2, 1)

    def test_fallback_nearest_prefix(self, levenshtein):
        call = levenshtein.classify(dna('TTTTTTTT'), fallback=True)
        assert call.found
        assert call.distance >= 2
