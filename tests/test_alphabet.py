import numpy as np
import pytest
from seqpack.core.alphabet import Alphabet, AlphabetError, DecodeError


class TestAlphabetInit:
    def test_valid_init(self):
        alpha = Alphabet('TEST', b'ACGT', 2, 'dna')
        assert len(alpha) == 4
        assert alpha.bits_per_symbol == 2
        assert b'A' in alpha
        assert 'c' in alpha
        assert b'Z' not in alpha
        assert 'AC' not in alpha

    def test_init_invalid_ascii(self):
        with pytest.raises(AlphabetError, match="valid ASCII"):
            Alphabet('TEST', b'ACG\xff', 2, 'dna')

    def test_init_duplicates(self):
        with pytest.raises(AlphabetError, match="duplicate"):
            Alphabet('TEST', b'AACGT', 4, 'dna')

    def test_init_too_many_symbols(self):
        with pytest.raises(AlphabetError, match="do not fit"):
            Alphabet('TEST', b'ACGTN', 2, 'dna')

    def test_init_bad_width(self):
        with pytest.raises(AlphabetError, match="2, 4 or 8"):
            Alphabet('TEST', b'ACGT', 3, 'dna')

    def test_complement(self):
        alpha = Alphabet('TEST', b'ACGT', 2, 'dna', complement=b'TGCA')
        # A(0) -> T(3)
        assert alpha.complement[0] == 3
        assert alpha.complement[3] == 0

    def test_invalid_complement_length(self):
        with pytest.raises(AlphabetError, match="same length"):
            Alphabet('TEST', b'ACGT', 2, 'dna', complement=b'TG')

    def test_invalid_complement_chars(self):
        with pytest.raises(AlphabetError, match="not in alphabet"):
            Alphabet('TEST', b'ACGT', 2, 'dna', complement=b'TGXZ')

    def test_members_must_be_bases(self):
        with pytest.raises(AlphabetError, match="unambiguous"):
            Alphabet('TEST', b'ACGTNR', 4, 'dna', {b'N': b'ACGT', b'R': b'AN'})


class TestStandardAlphabets:
    def test_dna_codes_are_bit_sets(self):
        dna = Alphabet.DNA
        assert dna.encode_symbol('-') == 0
        assert dna.encode_symbol('A') == 1
        assert dna.encode_symbol('C') == 2
        assert dna.encode_symbol('G') == 4
        assert dna.encode_symbol('T') == 8
        assert dna.encode_symbol('N') == 15
        # Ambiguity codes are unions of their members
        assert dna.encode_symbol('R') == dna.encode_symbol('A') | dna.encode_symbol('G')
        assert dna.encode_symbol('B') == 2 | 4 | 8

    def test_widths(self):
        assert Alphabet.DNA.bits_per_symbol == 4
        assert Alphabet.RNA.bits_per_symbol == 4
        assert Alphabet.DNA_2BIT.bits_per_symbol == 2
        assert Alphabet.AMINO.bits_per_symbol == 8
        assert len(Alphabet.AMINO) == 28

    def test_rna_uses_u(self):
        assert 'U' in Alphabet.RNA
        assert 'T' not in Alphabet.RNA
        assert Alphabet.RNA.encode_symbol('U') == 8

    def test_gap_and_wildcard(self):
        assert Alphabet.DNA.gap == 0
        assert Alphabet.DNA.wildcard == 15
        assert Alphabet.DNA_2BIT.gap is None
        assert Alphabet.AMINO.decode_symbol(Alphabet.AMINO.wildcard) == 'X'

    def test_unambiguous_codes(self):
        symbols = [Alphabet.DNA.decode_symbol(c) for c in Alphabet.DNA.unambiguous_codes]
        assert symbols == ['A', 'C', 'G', 'T']


class TestSymbols:
    @pytest.mark.parametrize('alpha', [Alphabet.DNA, Alphabet.RNA, Alphabet.DNA_2BIT, Alphabet.AMINO])
    def test_symbol_roundtrip(self, alpha):
        for symbol in alpha:
            assert alpha.decode_symbol(alpha.encode_symbol(symbol)) == symbol

    def test_lowercase(self):
        assert Alphabet.DNA.encode_symbol('r') == Alphabet.DNA.encode_symbol('R')

    def test_invalid_symbol(self):
        with pytest.raises(DecodeError) as info:
            Alphabet.DNA.encode_symbol('Z')
        assert info.value.value == 'Z'
        assert info.value.position is None

    def test_decode_out_of_range(self):
        with pytest.raises(DecodeError):
            Alphabet.DNA_2BIT.decode_symbol(4)
        with pytest.raises(DecodeError):
            Alphabet.DNA.decode_symbol(16)

    def test_ambiguous_and_gap(self):
        dna = Alphabet.DNA
        assert dna.is_ambiguous('N')
        assert dna.is_ambiguous('R')
        assert not dna.is_ambiguous('A')
        assert not dna.is_ambiguous('-')
        assert dna.is_gap('-')
        assert not dna.is_gap('N')
        assert not Alphabet.DNA_2BIT.is_gap('A')
        assert Alphabet.AMINO.is_ambiguous('B')
        assert not Alphabet.AMINO.is_ambiguous('*')


class TestCompatibility:
    def test_nucleotides(self):
        dna = Alphabet.DNA
        assert dna.compatible('A', 'A')
        assert dna.compatible('A', 'N')
        assert dna.compatible('R', 'A')
        assert dna.compatible('R', 'M')  # share A
        assert not dna.compatible('R', 'Y')
        assert not dna.compatible('C', 'G')

    def test_every_symbol_compatible_with_itself(self):
        for alpha in (Alphabet.DNA, Alphabet.RNA, Alphabet.AMINO):
            assert alpha.compatibility.diagonal().all()

    def test_gap_only_matches_gap(self):
        dna = Alphabet.DNA
        assert dna.compatible('-', '-')
        for symbol in dna:
            if symbol != '-':
                assert not dna.compatible(symbol, '-')

    def test_symmetric(self):
        compat = Alphabet.AMINO.compatibility
        np.testing.assert_array_equal(compat, compat.T)

    def test_not_transitive(self):
        dna = Alphabet.DNA
        assert dna.compatible('A', 'R') and dna.compatible('R', 'G')
        assert not dna.compatible('A', 'G')

    def test_amino(self):
        aa = Alphabet.AMINO
        assert aa.compatible('B', 'D')
        assert aa.compatible('B', 'N')
        assert not aa.compatible('B', 'E')
        assert aa.compatible('X', 'W')
        assert not aa.compatible('X', '*')
        assert not aa.compatible('X', '-')

    def test_codes_accepted(self):
        assert Alphabet.DNA.compatible(1, 15)

    def test_table_is_read_only(self):
        with pytest.raises(ValueError):
            Alphabet.DNA.compatibility[0, 1] = True

    def test_equality_includes_member_sets(self):
        literal = Alphabet('LITERAL', b'-ACMGRSVTWYHKDBN', 4, 'dna', gap=b'-')
        assert literal != Alphabet.DNA
        assert len({literal, Alphabet.DNA}) == 2
        same = Alphabet('TEST', b'ACGT', 2, 'dna', complement=b'TGCA')
        assert same == Alphabet.DNA_2BIT
        assert hash(same) == hash(Alphabet.DNA_2BIT)


class TestComplement:
    def test_symbols(self):
        dna = Alphabet.DNA
        assert dna.complement_symbol('A') == 'T'
        assert dna.complement_symbol('G') == 'C'
        assert dna.complement_symbol('R') == 'Y'
        assert dna.complement_symbol('N') == 'N'
        assert dna.complement_symbol('-') == '-'
        assert Alphabet.RNA.complement_symbol('A') == 'U'

    def test_codes(self):
        assert Alphabet.DNA.complement_symbol(1) == 8

    def test_involution(self):
        dna = Alphabet.DNA
        for symbol in dna:
            assert dna.complement_symbol(dna.complement_symbol(symbol)) == symbol

    def test_amino_has_none(self):
        assert Alphabet.AMINO.complement is None
        with pytest.raises(AlphabetError):
            Alphabet.AMINO.complement_symbol('A')


class TestAlphabetEncoding:
    def test_encode_decode_roundtrip(self):
        alpha = Alphabet.DNA
        encoded = alpha.encode(b'ACGT')
        np.testing.assert_array_equal(encoded, [1, 2, 4, 8])
        assert alpha.decode(encoded) == b'ACGT'

    def test_encode_str(self):
        np.testing.assert_array_equal(Alphabet.DNA_2BIT.encode('acgt'), [0, 1, 2, 3])

    def test_encode_invalid_chars(self):
        with pytest.raises(DecodeError) as info:
            Alphabet.DNA.encode('ACGTZA')
        assert info.value.value == 'Z'
        assert info.value.position == 4

    def test_encode_non_ascii(self):
        with pytest.raises(DecodeError) as info:
            Alphabet.DNA.encode('ACé')
        assert info.value.position == 2

    def test_decode_invalid_code(self):
        with pytest.raises(DecodeError) as info:
            Alphabet.DNA_2BIT.decode(np.array([0, 1, 9], dtype=np.uint8))
        assert info.value.value == 9
        assert info.value.position == 2

    def test_recode_dna_rna(self):
        codes = Alphabet.DNA.encode('ACGTN')
        assert Alphabet.RNA.decode(Alphabet.RNA.recode(codes, Alphabet.DNA)) == b'ACGUN'

    def test_recode_widths(self):
        codes = Alphabet.DNA_2BIT.encode('GATTACA')
        assert Alphabet.DNA.decode(Alphabet.DNA.recode(codes, Alphabet.DNA_2BIT)) == b'GATTACA'

    def test_recode_missing_symbol(self):
        with pytest.raises(DecodeError):
            Alphabet.DNA_2BIT.recode(Alphabet.DNA.encode('ACN'), Alphabet.DNA)

    def test_recode_unrelated(self):
        with pytest.raises(AlphabetError):
            Alphabet.AMINO.recode(Alphabet.DNA.encode('ACG'), Alphabet.DNA)

    def test_codes_from(self):
        np.testing.assert_array_equal(Alphabet.DNA.codes_from(['A', 'C']), [1, 2])
        np.testing.assert_array_equal(Alphabet.DNA.codes_from([1, 2]), [1, 2])
        with pytest.raises(DecodeError):
            Alphabet.DNA.codes_from([1, 16])


class TestFactories:
    def test_seq_from_text(self):
        seq = Alphabet.DNA.seq_from('acgtn')
        assert str(seq) == 'ACGTN'
        assert seq.alphabet is Alphabet.DNA

    def test_seq_from_seq_shares(self):
        seq = Alphabet.DNA.seq_from('ACGT')
        other = Alphabet.DNA.seq_from(seq)
        assert other == seq
        assert seq.is_shared

    def test_seq_from_other_alphabet(self):
        seq = Alphabet.RNA.seq_from(Alphabet.DNA.seq_from('ACGT'))
        assert str(seq) == 'ACGU'

    def test_empty_seq(self):
        assert len(Alphabet.AMINO.empty_seq()) == 0

    def test_random_seq_unambiguous(self):
        rng = np.random.default_rng(42)
        seq = Alphabet.DNA.random_seq(500, rng)
        assert len(seq) == 500
        assert set(str(seq)) <= set('ACGT')

    def test_random_seq_reproducible(self):
        a = Alphabet.DNA.random_seq(50, np.random.default_rng(7))
        b = Alphabet.DNA.random_seq(50, np.random.default_rng(7))
        assert a == b

    def test_direct_construction_forbidden(self):
        from seqpack.containers.seq import Seq, SeqBuffer
        with pytest.raises(PermissionError):
            Seq(SeqBuffer.from_codes(np.zeros(1, dtype=np.uint8), 4), 0, 1, Alphabet.DNA)
