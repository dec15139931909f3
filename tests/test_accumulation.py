"""
청크 증명, 간결 검증, 누산기 접기 테스트.

Covers:
- prove_chunk / succinct_verify (valid accumulator, embedded accumulator)
- MalformedChildProof cases (instance length, value range, blob length, off-curve points)
- fold / verify_fold (order, blinding, tampering)
- check_instances (InstanceMismatch)
- Bit flips in a child proof invalidate the fold
"""

import random
from dataclasses import replace

import pytest

from aggregator.accumulation import (
    AccumulatorFolder, check_instances, extract_accumulators, fold, verify_fold,
)
from aggregator.batch import BatchHash
from aggregator.config import AggregatorConfig
from aggregator.errors import InstanceMismatch, MalformedChildProof
from aggregator.field import FR, G1, ec_add, encode_g1, decode_g1
from aggregator.kzg import KzgAccumulator, decide
from aggregator.snark import (
    PROOF_LEN, VerifyingKey, chunk_instances, chunk_snark, chunk_vk, prove_chunk,
    succinct_verify,
)


@pytest.fixture(scope="module")
def accumulators(scenario_snarks, small_config):
    return extract_accumulators(scenario_snarks, small_config)


def with_proof(snark, proof):
    return replace(snark, proof=proof)


# ─────────────────────────────────────────────────────────────────────
# 청크 증명 / 간결 검증
# ─────────────────────────────────────────────────────────────────────

class TestChunkSnark:
    def test_shape(self, scenario_snarks, small_config, scenario):
        snark = scenario_snarks[0]
        assert len(snark.proof) == PROOF_LEN
        assert len(snark.instances) == small_config.chunk_instance_len
        assert snark.instances[:small_config.acc_len] == [FR(0)] * small_config.acc_len
        assert bytes(int(v) for v in snark.instances[small_config.acc_len:]) == (
            scenario[0].public_input_hash()
        )

    def test_succinct_verify_decides(self, accumulators, srs):
        assert decide(accumulators[0], srs)

    def test_padding_slots_share_snark(self, scenario_snarks):
        assert scenario_snarks[2] is scenario_snarks[3]
        assert scenario_snarks[2].vk.label == b"padded-chunk"

    def test_deterministic(self, scenario_snarks, accumulators, small_config):
        assert succinct_verify(scenario_snarks[1], small_config) == accumulators[1]

    def test_vk_digest(self):
        assert VerifyingKey(44).digest() != VerifyingKey(45).digest()
        assert VerifyingKey(44, b"a").digest() != VerifyingKey(44, b"b").digest()

    def test_prove_wrong_length(self, srs, small_config):
        with pytest.raises(ValueError):
            prove_chunk(chunk_vk(small_config), [FR(1)] * 3, srs)

    def test_embedded_accumulator_is_folded_in(self, srs, small_config, scenario, accumulators):
        snark = chunk_snark(scenario[0], srs, small_config, accumulator=accumulators[2])
        acc = succinct_verify(snark, small_config)
        assert acc != accumulators[0]
        assert decide(acc, srs)

    def test_invalid_embedded_accumulator_fails(self, srs, small_config, scenario):
        bogus = KzgAccumulator(G1, G1)
        snark = chunk_snark(scenario[0], srs, small_config, accumulator=bogus)
        assert not decide(succinct_verify(snark, small_config), srs)


class TestMalformed:
    def test_wrong_instance_length(self, scenario_snarks, small_config):
        snark = replace(scenario_snarks[0], instances=scenario_snarks[0].instances[:-1])
        with pytest.raises(MalformedChildProof) as exc_info:
            succinct_verify(snark, small_config, child_index=3)
        assert exc_info.value.child_index == 3

    def test_hash_element_out_of_byte_range(self, scenario_snarks, small_config):
        instances = list(scenario_snarks[0].instances)
        instances[-1] = FR(256)
        with pytest.raises(MalformedChildProof):
            succinct_verify(replace(scenario_snarks[0], instances=instances), small_config)

    def test_limb_out_of_range(self, scenario_snarks, small_config):
        instances = list(scenario_snarks[0].instances)
        instances[0] = FR(2**88)
        with pytest.raises(MalformedChildProof):
            succinct_verify(replace(scenario_snarks[0], instances=instances), small_config)

    def test_embedded_point_off_curve(self, scenario_snarks, small_config):
        instances = list(scenario_snarks[0].instances)
        instances[0] = FR(1)  # lhs.x = 1, lhs.y = 0
        with pytest.raises(MalformedChildProof):
            succinct_verify(replace(scenario_snarks[0], instances=instances), small_config)

    def test_proof_length(self, scenario_snarks, small_config):
        with pytest.raises(MalformedChildProof):
            succinct_verify(with_proof(scenario_snarks[0], b"\x00" * 127), small_config)

    def test_proof_off_curve(self, scenario_snarks, small_config):
        bad = (1).to_bytes(32, "big") + (1).to_bytes(32, "big")
        with pytest.raises(MalformedChildProof):
            succinct_verify(with_proof(scenario_snarks[0], bad + scenario_snarks[0].proof[64:]),
                            small_config)

    def test_vk_domain_mismatch(self, scenario_snarks, small_config):
        snark = replace(scenario_snarks[0], vk=VerifyingKey(small_config.chunk_instance_len + 1))
        with pytest.raises(MalformedChildProof):
            succinct_verify(snark, small_config)

    def test_first_failing_child_reported(self, scenario_snarks, small_config):
        snarks = list(scenario_snarks)
        snarks[1] = with_proof(snarks[1], b"")
        snarks[3] = with_proof(snarks[3], b"")
        with pytest.raises(MalformedChildProof) as exc_info:
            extract_accumulators(snarks, small_config)
        assert exc_info.value.child_index == 1


# ─────────────────────────────────────────────────────────────────────
# 접기
# ─────────────────────────────────────────────────────────────────────

class TestFold:
    def test_fold_decides(self, accumulators, srs, small_config):
        folded, as_proof = fold(accumulators, srs, small_config, rng=random.Random(1))
        assert len(as_proof) == 128
        assert verify_fold(accumulators, folded, as_proof)
        assert decide(folded, srs)

    def test_without_blinding(self, accumulators, srs):
        config = AggregatorConfig(max_chunks=4, zk_blinding=False)
        folded, as_proof = fold(accumulators, srs, config)
        assert as_proof == b""
        assert verify_fold(accumulators, folded, as_proof)
        assert fold(accumulators, srs, config)[0] == folded

    def test_order_matters(self, accumulators, srs):
        config = AggregatorConfig(max_chunks=4, zk_blinding=False)
        folded, _ = fold(accumulators, srs, config)
        swapped = [accumulators[1], accumulators[0]] + accumulators[2:]
        assert not verify_fold(swapped, folded, b"")

    def test_tampered_fold_rejected(self, accumulators, srs, small_config):
        folded, as_proof = fold(accumulators, srs, small_config, rng=random.Random(2))
        tampered = KzgAccumulator(ec_add(folded.lhs, G1), folded.rhs)
        assert not verify_fold(accumulators, tampered, as_proof)
        assert not verify_fold(accumulators, folded, as_proof[:64])

    def test_blinding_changes_fold(self, accumulators, srs, small_config):
        a, _ = fold(accumulators, srs, small_config, rng=random.Random(3))
        b, _ = fold(accumulators, srs, small_config, rng=random.Random(4))
        assert a != b

    def test_empty(self, srs, small_config):
        with pytest.raises(ValueError):
            fold([], srs, small_config)

    def test_single_identity(self, srs):
        config = AggregatorConfig(max_chunks=1, zk_blinding=False)
        folded, _ = fold([KzgAccumulator.identity()], srs, config)
        assert folded.is_identity()

    def test_folder_bundle(self, scenario_snarks, srs, small_config, accumulators):
        folder = AccumulatorFolder(small_config)
        assert folder.extract_accumulators(scenario_snarks) == accumulators
        folded, as_proof = folder.extract_accumulators_and_proof(
            srs, scenario_snarks, rng=random.Random(1)
        )
        assert verify_fold(accumulators, folded, as_proof)


class TestBitFlips:
    @pytest.mark.parametrize("bit", [3, 260, 517, 1000])
    def test_flipped_proof_bit_rejected(self, scenario_snarks, srs, small_config, bit):
        snarks = list(scenario_snarks)
        proof = bytearray(snarks[1].proof)
        proof[bit // 8] ^= 1 << (bit % 8)
        snarks[1] = with_proof(snarks[1], bytes(proof))
        try:
            accs = extract_accumulators(snarks, small_config)
        except MalformedChildProof as exc:
            assert exc.child_index == 1
            return
        folded, _ = fold(accs, srs, small_config, rng=random.Random(5))
        assert not decide(folded, srs)

    def test_other_valid_point_fails_fold(self, scenario_snarks, srs, small_config):
        snarks = list(scenario_snarks)
        pi = decode_g1(snarks[0].proof[64:])
        snarks[0] = with_proof(snarks[0], snarks[0].proof[:64] + encode_g1(ec_add(pi, G1)))
        accs = extract_accumulators(snarks, small_config)
        folded, _ = fold(accs, srs, small_config, rng=random.Random(6))
        assert not decide(folded, srs)

    def test_tampered_instance_fails_fold(self, scenario_snarks, srs, small_config):
        snarks = list(scenario_snarks)
        instances = list(snarks[2].instances)
        instances[-1] = FR((int(instances[-1]) + 1) % 256)
        snarks[2] = replace(snarks[2], instances=instances)
        accs = extract_accumulators(snarks, small_config)
        folded, _ = fold(accs, srs, small_config, rng=random.Random(7))
        assert not decide(folded, srs)


# ─────────────────────────────────────────────────────────────────────
# 인스턴스 일치
# ─────────────────────────────────────────────────────────────────────

class TestCheckInstances:
    def test_matching(self, scenario, scenario_snarks, small_config):
        batch = BatchHash.construct(scenario, small_config)
        check_instances(batch, scenario_snarks, small_config)

    def test_swapped_children(self, scenario, scenario_snarks, small_config):
        batch = BatchHash.construct(scenario, small_config)
        snarks = [scenario_snarks[1], scenario_snarks[0]] + list(scenario_snarks[2:])
        with pytest.raises(InstanceMismatch) as exc_info:
            check_instances(batch, snarks, small_config)
        assert exc_info.value.child_index == 0

    def test_real_snark_in_padding_slot(self, scenario, scenario_snarks, small_config):
        batch = BatchHash.construct(scenario, small_config)
        snarks = list(scenario_snarks)
        snarks[3] = scenario_snarks[1]
        with pytest.raises(InstanceMismatch) as exc_info:
            check_instances(batch, snarks, small_config)
        assert exc_info.value.child_index == 3

    def test_snark_count_must_match_slots(self, scenario, scenario_snarks, small_config):
        batch = BatchHash.construct(scenario, small_config)
        with pytest.raises(MalformedChildProof) as exc_info:
            check_instances(batch, scenario_snarks[:2], small_config)
        assert exc_info.value.child_index is None

    def test_short_instance(self, scenario, scenario_snarks, small_config):
        batch = BatchHash.construct(scenario, small_config)
        snarks = list(scenario_snarks)
        snarks[0] = replace(snarks[0], instances=snarks[0].instances[:20])
        with pytest.raises(MalformedChildProof):
            check_instances(batch, snarks, small_config)

    def test_chunk_instances_layout(self, scenario, small_config):
        values = chunk_instances(scenario[1], small_config)
        assert len(values) == small_config.chunk_instance_len
        assert bytes(int(v) for v in values[12:]) == scenario[1].public_input_hash()
