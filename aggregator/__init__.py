"""
청크 증명 집계기
=================

롤업 청크 증명 N개를 배치 하나의 집계 증명으로 묶는다.

  ┌─────────────────────────────────────────────────────┐
  │  청크 메타데이터 → ChunkHash                          │
  │  BatchHash.construct (패딩, 데이터 해시, 공개 입력 해시)│
  │  extract_hash_preimages → Keccak 블랙박스             │
  │  HashChainLinker: 연결 규칙 1–8                       │
  ├─────────────────────────────────────────────────────┤
  │  자식 증명 → 간결 검증 → 누산기 N개                    │
  │  AccumulatorFolder: Σ accᵢ · rⁱ                      │
  ├─────────────────────────────────────────────────────┤
  │  assemble → [누산기 림, 해시 바이트 32, k]             │
  │  ProvingBackend.prove → AggregateAttestation        │
  └─────────────────────────────────────────────────────┘

사용 예시:
    >>> from aggregator import MockProver, aggregate, verify_attestation
    >>> prover = MockProver()
    >>> attestation = aggregate(chunks, snarks, srs, config, backend=prover)
    >>> verify_attestation(attestation, srs, config, backend=prover)  # True
"""

from aggregator.config import AggregatorConfig
from aggregator.chunk import ChunkHash, ChunkSlot, SlotKind
from aggregator.batch import BatchHash, BatchPublicInput
from aggregator.linker import HashChainLinker, LinkedHashes
from aggregator.kzg import KzgAccumulator, decide
from aggregator.snark import Snark, VerifyingKey, prove_chunk, succinct_verify
from aggregator.accumulation import AccumulatorFolder
from aggregator.instance import assemble, disassemble
from aggregator.aggregation import (
    AggregateAttestation, AggregationCircuit, MockProver, ProvingBackend,
    aggregate, verify_attestation,
)
from aggregator.errors import (
    AggregatorError, ConstructionError, InvalidChunkCount, BrokenChunkLinkage,
    ChainIdMismatch, ConsistencyViolation, BatchConsistencyViolation, PreimageShapeError,
    AccumulationError, MalformedChildProof, InstanceMismatch, Rule,
)
