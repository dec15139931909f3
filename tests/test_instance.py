"""공개 인스턴스 조립 / 해독 테스트."""

import random

import pytest

from aggregator.config import AggregatorConfig
from aggregator.field import FR, G1, ec_mul
from aggregator.instance import (
    accumulator_from_limbs, accumulator_to_limbs, assemble, disassemble,
)
from aggregator.kzg import KzgAccumulator

CONFIG = AggregatorConfig(max_chunks=4)


def random_accumulator(rng):
    return KzgAccumulator(ec_mul(G1, rng.randrange(1, 2**64)), ec_mul(G1, rng.randrange(1, 2**64)))


class TestLayout:
    def test_round_trip(self):
        rng = random.Random(11)
        for k in (1, 3, 4):
            acc = random_accumulator(rng)
            pi_hash = rng.randbytes(32)
            inst = assemble(acc, pi_hash, k, CONFIG)
            assert len(inst) == CONFIG.instance_len == 45
            assert disassemble(inst, CONFIG) == (acc, pi_hash, k)

    def test_element_order(self):
        acc = random_accumulator(random.Random(12))
        pi_hash = bytes(range(32))
        inst = assemble(acc, pi_hash, 2, CONFIG)
        assert inst[:12] == accumulator_to_limbs(acc, CONFIG)
        assert [int(v) for v in inst[12:44]] == list(range(32))
        assert inst[44] == FR(2)

    def test_limbs_little_endian(self):
        acc = KzgAccumulator(G1, G1)
        limbs = accumulator_to_limbs(acc, CONFIG)
        assert limbs[:3] == [FR(1), FR(0), FR(0)]
        assert limbs[3:6] == [FR(2), FR(0), FR(0)]

    def test_identity_is_all_zero(self):
        inst = assemble(KzgAccumulator.identity(), b"\x00" * 32, 1, CONFIG)
        assert all(v == FR(0) for v in inst[:12])
        acc, _, _ = disassemble(inst, CONFIG)
        assert acc.is_identity()


class TestErrors:
    def test_hash_length(self):
        with pytest.raises(ValueError):
            assemble(KzgAccumulator.identity(), b"\x00" * 31, 1, CONFIG)

    @pytest.mark.parametrize("k", [0, 5])
    def test_chunk_count_range(self, k):
        with pytest.raises(ValueError):
            assemble(KzgAccumulator.identity(), b"\x00" * 32, k, CONFIG)

    def test_wrong_length(self):
        inst = assemble(KzgAccumulator.identity(), b"\x00" * 32, 1, CONFIG)
        with pytest.raises(ValueError):
            disassemble(inst[:-1], CONFIG)

    def test_hash_byte_range(self):
        inst = assemble(KzgAccumulator.identity(), b"\x00" * 32, 1, CONFIG)
        inst[20] = FR(300)
        with pytest.raises(ValueError):
            disassemble(inst, CONFIG)

    def test_limb_count(self):
        with pytest.raises(ValueError):
            accumulator_from_limbs([FR(0)] * 11, CONFIG)

    def test_off_curve(self):
        values = [FR(0)] * 12
        values[0] = FR(5)
        values[3] = FR(5)
        with pytest.raises(ValueError):
            accumulator_from_limbs(values, CONFIG)
