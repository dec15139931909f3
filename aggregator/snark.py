"""
청크 증명 (Snark)과 간결 검증 (Succinct Verification)
=======================================================

실제 청크 증명은 외부 증명기가 만든다. 이 모듈은 같은 모양의 증명을 만드는
개발 / 테스트용 모의 청크 증명기와, 집계기가 쓰는 간결 검증기를 제공한다.

**청크 인스턴스** (길이 4·limbs + 32):
    [내장 누산기 림 ×4·limbs (없으면 0), 청크 공개 입력 해시 바이트 ×32]

**모의 청크 증명**:
  1. 인스턴스 다항식 p(x) = Σ instᵢ · xⁱ 을 커밋: C = p(τ)·G1
  2. 트랜스크립트 (vk 다이제스트, 인스턴스, C) 에서 평가 점 z 유도
  3. p(z) 열기 증명 π
  4. 증명 바이트열 = C ‖ π (각 64바이트)

**간결 검증**:
  트랜스크립트를 재생해 z를 다시 얻고 y = p(z) 를 인스턴스에서 직접 계산하여
  페어링 없이 누산기 (π, z·π + C - y·G1) 를 만든다. 판정(decide)은 접기 이후
  한 번만 한다. 인스턴스에 항등원이 아닌 누산기가 내장되어 있으면
  트랜스크립트 챌린지 s로 acc + s·embedded 를 만들어 하나로 합친다.

사용 예시:
    >>> vk = VerifyingKey(config.chunk_instance_len, b"chunk")
    >>> snark = prove_chunk(vk, chunk_instances(chunk, config), srs)
    >>> acc = succinct_verify(snark, config)
    >>> decide(acc, srs)  # True
"""

import hashlib
from dataclasses import dataclass
from typing import List

from aggregator.config import DEFAULT_CONFIG
from aggregator.chunk import ChunkHash
from aggregator.constants import DIGEST_LEN
from aggregator.errors import MalformedChildProof
from aggregator.field import FR, decode_g1, encode_g1
from aggregator.instance import accumulator_from_limbs, accumulator_to_limbs
from aggregator.kzg import KzgAccumulator, accumulator_from_opening, commit, create_witness
from aggregator.polynomial import Polynomial
from aggregator.transcript import Transcript

PROOF_LEN = 128


@dataclass(frozen=True)
class VerifyingKey:
    """청크 회로의 검증 키. domain_size는 인스턴스 길이 (다항식 차수 + 1)."""
    domain_size: int
    label: bytes = b"chunk"

    def digest(self):
        h = hashlib.sha256()
        h.update(self.label)
        h.update(self.domain_size.to_bytes(8, "big"))
        return h.digest()


@dataclass(frozen=True)
class Snark:
    vk: VerifyingKey
    instances: List[FR]
    proof: bytes


def chunk_vk(config=DEFAULT_CONFIG):
    return VerifyingKey(config.chunk_instance_len, b"chunk")


def padded_chunk_vk(config=DEFAULT_CONFIG):
    return VerifyingKey(config.chunk_instance_len, b"padded-chunk")


def chunk_instances(chunk, config=DEFAULT_CONFIG, accumulator=None):
    """청크 증명의 공개 인스턴스: 누산기 림 ‖ 공개 입력 해시 바이트."""
    if accumulator is None:
        accumulator = KzgAccumulator.identity()
    instances = accumulator_to_limbs(accumulator, config)
    instances.extend(FR(b) for b in chunk.public_input_hash())
    return instances


def _challenge(vk, instances, commitment):
    t = Transcript(b"chunk-proof")
    t.append_bytes(b"vk", vk.digest())
    for value in instances:
        t.append_scalar(b"inst", value)
    t.append_point(b"C", commitment)
    return t


def prove_chunk(vk, instances, srs):
    """인스턴스 다항식에 대한 KZG 열기로 모의 청크 증명을 만든다."""
    if len(instances) != vk.domain_size:
        raise ValueError(f"인스턴스 길이 {len(instances)} != 도메인 크기 {vk.domain_size}")
    instances = [v if isinstance(v, FR) else FR(v) for v in instances]
    poly = Polynomial(instances)
    commitment = commit(poly, srs)
    z = _challenge(vk, instances, commitment).challenge_scalar(b"z")
    proof = create_witness(poly, z, srs)
    return Snark(vk, instances, encode_g1(commitment) + encode_g1(proof))


def chunk_snark(chunk, srs, config=DEFAULT_CONFIG, accumulator=None):
    return prove_chunk(chunk_vk(config), chunk_instances(chunk, config, accumulator), srs)


def padded_chunk_snark(previous, srs, config=DEFAULT_CONFIG):
    """previous 뒤에 오는 패딩 청크의 증명. 같은 batch의 모든 패딩 슬롯이 공유한다."""
    padding = ChunkHash.padded_chunk_hash(previous)
    return prove_chunk(padded_chunk_vk(config), chunk_instances(padding, config), srs)


def succinct_verify(snark, config=DEFAULT_CONFIG, child_index=0):
    """자식 증명의 누산기를 페어링 없이 재구성한다.

    Raises:
        MalformedChildProof: 인스턴스 길이 / 값 범위, 증명 길이, 곡선 밖의 점
    """
    instances = snark.instances
    if len(instances) != config.chunk_instance_len:
        raise MalformedChildProof(
            child_index, f"인스턴스 길이 {len(instances)} != {config.chunk_instance_len}"
        )
    if snark.vk.domain_size != len(instances):
        raise MalformedChildProof(child_index, "검증 키 도메인 크기가 인스턴스와 다릅니다")
    if len(snark.proof) != PROOF_LEN:
        raise MalformedChildProof(child_index, f"증명 길이 {len(snark.proof)} != {PROOF_LEN}")

    instances = [v if isinstance(v, FR) else FR(v) for v in instances]
    hash_values = instances[config.acc_len:]
    if any(int(v) > 0xFF for v in hash_values[:DIGEST_LEN]):
        raise MalformedChildProof(child_index, "해시 원소가 바이트 범위를 벗어났습니다")

    try:
        embedded = accumulator_from_limbs(instances[:config.acc_len], config)
        commitment = decode_g1(snark.proof[:64])
        proof = decode_g1(snark.proof[64:])
    except ValueError as exc:
        raise MalformedChildProof(child_index, str(exc)) from exc

    t = _challenge(snark.vk, instances, commitment)
    z = t.challenge_scalar(b"z")
    y = Polynomial(instances).evaluate(z)
    accumulator = accumulator_from_opening(commitment, proof, z, y)

    if not embedded.is_identity():
        t.append_accumulator(b"embedded", embedded)
        s = t.challenge_scalar(b"combine")
        accumulator = accumulator + embedded.scale(s)
    return accumulator
