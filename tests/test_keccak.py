"""
Keccak 블랙박스 테스트: 해시, 워드 역순, RLC, 행 배치, multi_keccak 룩업.
"""

import pytest

from aggregator.circuit import Circuit
from aggregator.config import AggregatorConfig
from aggregator.field import FR
from aggregator.keccak import (
    KeccakLookup, block_checksums, get_indices, keccak256, keccak_input_challenge,
    multi_keccak, num_blocks, rlc, word_reverse,
)


class TestPrimitives:
    def test_keccak256_empty(self):
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_word_reverse(self):
        digest = bytes(range(32))
        rev = word_reverse(digest)
        for i in range(4):
            for j in range(8):
                assert digest[i * 8 + j] == rev[(3 - i) * 8 + j]
        assert word_reverse(rev) == digest

    def test_word_reverse_length(self):
        with pytest.raises(ValueError):
            word_reverse(b"\x00" * 31)

    def test_rlc(self):
        assert rlc([1, 2, 3], FR(10)) == FR(123)
        assert rlc([], FR(10)) == FR(0)
        assert rlc([5], FR(10)) == FR(5)

    def test_num_blocks(self):
        assert num_blocks(0, 136) == 1
        assert num_blocks(135, 136) == 1
        assert num_blocks(136, 136) == 2
        assert num_blocks(320, 136) == 3


class TestRowLayout:
    def test_known_rows_for_default_rows(self):
        (inputs, digests), = get_indices((136,), 12, 136)
        assert inputs[:8] == tuple(range(12, 20))
        assert inputs[8:16] == tuple(range(24, 32))
        assert len(inputs) == 2 * 136
        assert digests[:8] == tuple(range(552, 560))
        assert digests[8:16] == tuple(range(564, 572))
        assert len(digests) == 32

    def test_second_preimage_starts_after_first(self):
        layout = get_indices((136, 32), 12, 136)
        inputs, digests = layout[1]
        # 첫 전상이 블록 두 개 (600행) 를 차지한다
        assert inputs[0] == 600 + 12
        assert digests[0] == 600 + 252

    def test_row_multiplier_is_configurable(self):
        (inputs, digests), = get_indices((10,), 20, 136)
        assert inputs[:3] == (20, 21, 22)
        assert digests[0] == 500 - 80

    def test_rows_are_unique(self):
        layout = get_indices((136, 320, 136), 12, 136)
        rows = [r for inputs, digests in layout for r in inputs + digests]
        assert len(rows) == len(set(rows))

    def test_cached(self):
        assert get_indices((136,), 12, 136) is get_indices((136,), 12, 136)


class TestMultiKeccak:
    @pytest.fixture
    def assigned(self):
        config = AggregatorConfig(max_chunks=2)
        preimages = [bytes(range(136)), bytes(200), b"\x07" * 64]
        lengths = [136, 150, 32]
        challenge = keccak_input_challenge(preimages)
        circuit = Circuit()
        cells = multi_keccak(circuit, preimages, lengths, challenge, config)
        return circuit, preimages, lengths, challenge, cells

    def test_cells_and_lookups(self, assigned):
        circuit, preimages, lengths, challenge, (inputs, digests, sums) = assigned
        assert len(circuit.lookups) == 3
        assert all(isinstance(lk, KeccakLookup) for lk in circuit.lookups)
        for i, preimage in enumerate(preimages):
            assert bytes(int(circuit.value(c)) for c in inputs[i]) == preimage
            expected = word_reverse(keccak256(preimage[:lengths[i]]))
            assert bytes(int(circuit.value(c)) for c in digests[i]) == expected
            assert len(sums[i]) == num_blocks(len(preimage), 136)
        assert circuit.is_satisfied()

    def test_block_checksums(self, assigned):
        circuit, preimages, lengths, challenge, (_, _, sums) = assigned
        # 전상 1: 200바이트 폭, 150바이트 해싱 → 블록 0은 136바이트, 블록 1은 150바이트
        assert circuit.value(sums[1][0]) == rlc(preimages[1][:136], challenge)
        assert circuit.value(sums[1][1]) == rlc(preimages[1][:150], challenge)
        assert block_checksums(preimages[1], 150, challenge, 136)[1] == rlc(preimages[1][:150], challenge)

    def test_tampered_input_detected(self, assigned):
        circuit, _, _, _, (inputs, _, _) = assigned
        circuit.values[inputs[2][0].index] = FR(8)
        failures = circuit.verify()
        assert [f.kind for f in failures] == ["lookup"]

    def test_tampered_digest_detected(self, assigned):
        circuit, _, _, _, (_, digests, _) = assigned
        cell = digests[0][5]
        circuit.values[cell.index] = circuit.value(cell) + FR(1)
        assert not circuit.is_satisfied()

    def test_non_byte_input_detected(self, assigned):
        circuit, _, _, _, (inputs, _, _) = assigned
        circuit.values[inputs[0][0].index] = FR(256)
        assert not circuit.is_satisfied()

    def test_length_longer_than_preimage(self):
        with pytest.raises(ValueError):
            multi_keccak(Circuit(), [b"ab"], [3], FR(1), AggregatorConfig())

    def test_challenge_depends_on_preimages(self):
        assert keccak_input_challenge([b"a"]) != keccak_input_challenge([b"b"])
