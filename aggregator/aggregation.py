"""
집계 회로와 집계 증명 (AggregateAttestation)
=============================================

배치 하나의 집계 전 과정:

  1. BatchHash.construct: 실제 청크 검증 + 패딩 + 배치 해시
  2. 인스턴스 일치 검사: 자식 i 의 해시 인스턴스 == 슬롯 i 청크의 공개 입력 해시
  3. AccumulatorFolder: 자식 누산기 추출 후 접기
  4. assemble: [누산기 림, 배치 공개 입력 해시 바이트, k] 인스턴스
  5. synthesize: 연결기 제약 + 인스턴스 바인딩(규칙 9) 을 담은 Circuit
  6. ProvingBackend.prove: 외부 백엔드가 Circuit과 인스턴스로 증명 생성

검증자는 인스턴스를 해독해 필드와 대조하고 접힌 누산기를 페어링 한 번으로 판정한다.

사용 예시:
    >>> prover = MockProver()
    >>> attestation = aggregate(chunks, snarks, srs, config, backend=prover)
    >>> verify_attestation(attestation, srs, config, backend=prover)  # True
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import List

from aggregator.accumulation import AccumulatorFolder, check_instances
from aggregator.batch import BatchHash
from aggregator.circuit import Circuit
from aggregator.config import DEFAULT_CONFIG
from aggregator.constants import DIGEST_LEN
from aggregator.errors import (
    BatchConsistencyViolation, ConsistencyViolation, MalformedChildProof, Rule,
)
from aggregator.field import FR
from aggregator.instance import INSTANCE_VERSION, assemble, disassemble
from aggregator.kzg import KzgAccumulator, decide
from aggregator.linker import HashChainLinker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregateAttestation:
    folded_accumulator: KzgAccumulator
    public_input_hash: bytes
    number_of_valid_chunks: int
    proof_bytes: bytes
    as_proof: bytes
    instance: List[FR]
    version: int = INSTANCE_VERSION


class AggregationCircuit:
    """배치 하나와 자식 증명 max_chunks 개로 만든 집계 회로.

    속성:
        batch: BatchHash
        snarks: 슬롯 순서의 자식 증명 리스트
        folded: 접힌 누산기
        as_proof: 접기 증명 (블라인딩 쌍 인코딩)
        flattened_instance: 집계 회로의 공개 인스턴스
    """

    def __init__(self, batch, snarks, srs, config=DEFAULT_CONFIG, rng=None):
        if len(snarks) != config.max_chunks:
            raise MalformedChildProof(
                None, f"자식 증명 {len(snarks)}개, {config.max_chunks}개여야 합니다"
            )
        self.batch = batch
        self.snarks = list(snarks)
        self.config = config

        # 해시 인스턴스가 어긋난 자식은 접기 전에 거른다
        check_instances(batch, self.snarks, config)

        folder = AccumulatorFolder(config)
        self.folded, self.as_proof = folder.extract_accumulators_and_proof(srs, self.snarks, rng)
        self.flattened_instance = assemble(
            self.folded, batch.public_input_hash, batch.number_of_valid_chunks, config
        )

    def instances(self):
        return [self.flattened_instance]

    def synthesize(self):
        """연결기 제약과 인스턴스 바인딩을 담은 Circuit을 만든다."""
        config = self.config
        circuit = Circuit()
        linked = HashChainLinker(config).assign(
            circuit, self.batch.extract_hash_preimages(), self.batch.number_of_valid_chunks
        )

        acc_len = config.acc_len
        with circuit.tagged(Rule.INSTANCE_BINDING):
            for i, limb in enumerate(self.flattened_instance[:acc_len]):
                circuit.constrain_instance(circuit.assign(limb), i)

            batch_digest = linked.digest_cells[0]
            for i in range(4):
                for j in range(8):
                    circuit.constrain_instance(
                        batch_digest[(3 - i) * 8 + j], acc_len + i * 8 + j
                    )
            circuit.constrain_instance(linked.num_valid_cell, acc_len + DIGEST_LEN)

            # 자식 i 의 해시 인스턴스 == 슬롯 i 청크 전상의 다이제스트
            for slot, snark in enumerate(self.snarks):
                chunk_digest = linked.digest_cells[slot + 2]
                child_hash = snark.instances[acc_len:acc_len + DIGEST_LEN]
                for i in range(4):
                    for j in range(8):
                        cell = circuit.assign(child_hash[i * 8 + j])
                        circuit.constrain_equal(cell, chunk_digest[(3 - i) * 8 + j])
        return circuit


# ─────────────────────────────────────────────────────────────────────
# 증명 백엔드
# ─────────────────────────────────────────────────────────────────────

def _instance_bytes(instance):
    return b"".join(int(v).to_bytes(32, "big") for v in instance)


class ProvingBackend:
    """외부 증명 백엔드 인터페이스."""

    def prove(self, circuit, instance):
        raise NotImplementedError

    def verify(self, proof, instance):
        raise NotImplementedError


class MockProver(ProvingBackend):
    """제약을 직접 검사하는 개발용 백엔드.

    증명 = 회로 다이제스트 (32바이트) ‖ SHA-256(label ‖ 회로 다이제스트 ‖ 인스턴스).
    verify는 이 객체가 prove에서 제약을 검사한 회로의 증명만 받아들이므로,
    검증자는 증명을 만든 것과 같은 MockProver를 써야 한다.
    """

    label = b"mock-aggregation"

    def __init__(self):
        self._checked = set()

    def _binding(self, circuit_digest, instance):
        return hashlib.sha256(self.label + circuit_digest + _instance_bytes(instance)).digest()

    def prove(self, circuit, instance):
        failures = circuit.verify(instance)
        if failures:
            first = failures[0]
            detail = f"{first.kind} {first.index}: {first.detail}"
            logger.warning("mock prover found %d failed constraints", len(failures))
            if first.tag is None:
                raise ConsistencyViolation(detail)
            raise BatchConsistencyViolation(first.tag, detail=detail)

        bound = {position for _, position, _ in circuit.instance_constraints}
        unbound = [i for i in range(len(instance)) if i not in bound]
        if unbound:
            raise ConsistencyViolation(f"회로에 묶이지 않은 인스턴스 위치: {unbound}")

        circuit_digest = circuit.digest()
        self._checked.add(circuit_digest)
        return circuit_digest + self._binding(circuit_digest, instance)

    def verify(self, proof, instance):
        if len(proof) != 64:
            return False
        circuit_digest = proof[:32]
        if circuit_digest not in self._checked:
            return False
        return proof[32:] == self._binding(circuit_digest, instance)


# ─────────────────────────────────────────────────────────────────────
# 끝에서 끝까지
# ─────────────────────────────────────────────────────────────────────

def aggregate(chunks, snarks, srs, config=DEFAULT_CONFIG, backend=None, rng=None):
    """실제 청크 리스트와 슬롯별 자식 증명으로 집계 증명을 만든다.

    Args:
        chunks: 실제 ChunkHash 리스트 (k개)
        snarks: 슬롯 순서의 자식 증명 max_chunks개 (패딩 슬롯 포함)
        srs: KZG SRS
        backend: ProvingBackend (기본값 MockProver)
        rng: 블라인딩 스칼라용 random.Random

    Returns:
        AggregateAttestation
    """
    if backend is None:
        backend = MockProver()
    batch = BatchHash.construct(chunks, config)
    agg = AggregationCircuit(batch, snarks, srs, config, rng)
    circuit = agg.synthesize()
    proof_bytes = backend.prove(circuit, agg.flattened_instance)

    logger.info(
        "aggregated batch with %d valid chunks (%d constraints)",
        batch.number_of_valid_chunks, circuit.n + len(circuit.copy_constraints),
    )
    return AggregateAttestation(
        agg.folded,
        batch.public_input_hash,
        batch.number_of_valid_chunks,
        proof_bytes,
        agg.as_proof,
        agg.flattened_instance,
    )


def verify_attestation(attestation, srs, config=DEFAULT_CONFIG, *, backend):
    """인스턴스를 해독해 필드와 대조하고, 백엔드 증명과 접힌 누산기를 검사한다.

    backend는 증명을 만든 ProvingBackend (또는 그 검증 측) 이어야 한다.
    정직한 접기는 항등원 누산기를 만들지 않으므로 항등원은 거부한다.
    """
    if attestation.version != INSTANCE_VERSION:
        return False
    try:
        accumulator, pi_hash, k = disassemble(attestation.instance, config)
    except ValueError:
        return False
    if not 1 <= k <= config.max_chunks:
        return False
    if accumulator.is_identity():
        return False
    if (accumulator != attestation.folded_accumulator
            or pi_hash != attestation.public_input_hash
            or k != attestation.number_of_valid_chunks):
        return False
    if not backend.verify(attestation.proof_bytes, attestation.instance):
        return False
    return decide(accumulator, srs)
