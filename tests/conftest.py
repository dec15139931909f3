import os
import random
import sys

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from aggregator.chunk import ChunkHash
from aggregator.config import AggregatorConfig
from aggregator.srs import SRS
from aggregator.snark import chunk_snark, padded_chunk_snark


# ── 테스트 상수 ──
SMALL_MAX_CHUNKS = 4


def linked_chunks(rng, k, chain_id=1):
    """prev/post 가 이어진 무작위 청크 k개."""
    chunks = [ChunkHash.random(rng, chain_id) for _ in range(k)]
    for i in range(1, k):
        c = chunks[i]
        chunks[i] = ChunkHash(
            chain_id, chunks[i - 1].post_state_root, c.post_state_root,
            c.withdraw_root, c.data_hash,
        )
    return chunks


def scenario_chunks():
    """A, B 두 청크로 된 고정 시나리오 (chain 1)."""
    a = ChunkHash(1, b"\x00" * 32, b"\x11" * 32, b"\x22" * 32, b"\x33" * 32)
    b = ChunkHash(1, b"\x11" * 32, b"\x44" * 32, b"\x55" * 32, b"\x66" * 32)
    return [a, b]


@pytest.fixture(scope="session")
def small_config():
    return AggregatorConfig(max_chunks=SMALL_MAX_CHUNKS)


@pytest.fixture(scope="session")
def srs(small_config):
    """청크 인스턴스 다항식 (차수 chunk_instance_len - 1) 을 담는 SRS."""
    return SRS.generate(max_degree=small_config.chunk_instance_len, seed=42)


@pytest.fixture(scope="session")
def scenario_snarks(srs, small_config):
    """시나리오 청크 2개 + 공유 패딩 증명으로 채운 슬롯별 자식 증명 4개."""
    chunks = scenario_chunks()
    real = [chunk_snark(c, srs, small_config) for c in chunks]
    padding = padded_chunk_snark(chunks[-1], srs, small_config)
    return real + [padding] * (SMALL_MAX_CHUNKS - len(chunks))


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def make_linked_chunks():
    return linked_chunks


@pytest.fixture(scope="session")
def scenario():
    return scenario_chunks()
