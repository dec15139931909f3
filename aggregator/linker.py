"""
해시 체인 연결기 (HashChainLinker)
===================================

배치의 전상 / 다이제스트 셀 사이의 연결 규칙을 강제한다.
각 규칙은 두 번 확인한다.

  1. 값 사전 검사: 위반이면 즉시 BatchConsistencyViolation
     (규칙 3은 Keccak 셀 할당 직후, 게이트 기록 전에 검사)
  2. 회로 제약: 외부 백엔드가 증명해야 하는 게이트 / 복사 제약 (규칙 번호 태그)

**규칙**:
  1. DIGEST_REUSE: 전상[0]의 data_hash 필드 == 다이제스트(전상[1]) (워드 역순)
  2. ROOT_SHARING: 전상[0]의 prev == 첫 슬롯의 prev,
                   전상[0]의 post / withdraw == 마지막 슬롯의 post / withdraw
  3. DATA_HASH_LENGTH: 전상[1]의 앞 32·k 바이트 RLC == 선택된 블록의 체크섬
  4. CONTINUITY: 인접 슬롯 i, i+1 에서 prev(i+1) == post(i)
  5. CHAIN_ID: 모든 청크 전상의 체인 ID == 전상[0]의 체인 ID
  6. PADDING_SHAPE: 패딩 슬롯의 prev == post
  7. PADDING_DATA: 패딩 슬롯의 data_hash == 0
  8. DATA_HASH_COMPOSITION: 실제 청크 i 의 data_hash == 전상[1] 바이트 [32i, 32i+32)

**유효 플래그**:
  k의 원-핫 분해 e₁..e_MAX (불리언, Σe = 1, Σ j·e_j = k) 로부터

      chunk_is_valid[i] = Σ_{j > i} e_j
      band_flag[b]      = Σ_{band(j) = b} e_j,   band(j) = ⌈32j / rate⌉

  규칙 3의 블록 선택은 체인된 조건문이 아닌 band_flag 로 하는 멀티플렉서이다.

사용 예시:
    >>> linker = HashChainLinker(config)
    >>> linked = linker.assign(circuit, batch.extract_hash_preimages(), batch.number_of_valid_chunks)
    >>> circuit.is_satisfied()  # True
"""

import logging
import time
from bisect import bisect_left
from dataclasses import dataclass
from typing import List

from aggregator.config import DEFAULT_CONFIG
from aggregator.constants import (
    CHAIN_ID_LEN, DIGEST_LEN, CHUNK_PREIMAGE_LEN,
    PREV_STATE_ROOT_INDEX, POST_STATE_ROOT_INDEX, WITHDRAW_ROOT_INDEX, DATA_HASH_INDEX,
)
from aggregator.errors import (
    BatchConsistencyViolation, InvalidChunkCount, PreimageShapeError, Rule,
)
from aggregator.keccak import (
    keccak256, keccak_input_challenge, multi_keccak, rlc,
)

logger = logging.getLogger(__name__)


# (max_chunks, rate) → 밴드별 최대 청크 수. 공식에서 얻은 값과 같아야 한다.
_BAND_TABLE = {
    (10, 136): (4, 8, 10),
}


# ─────────────────────────────────────────────────────────────────────
# 밴드 (규칙 3 블록 선택)
# ─────────────────────────────────────────────────────────────────────

def band(k, rate):
    """32·k 바이트를 흡수하는 데 필요한 블록 수 ⌈32k / rate⌉."""
    return -(-DIGEST_LEN * k // rate)


def data_hash_bands(max_chunks, rate):
    """밴드마다 그 밴드에 속하는 가장 큰 청크 수를 공식으로 계산한다.

    예시:
        >>> data_hash_bands(10, 136)
        (4, 8, 10)
    """
    thresholds = []
    for k in range(1, max_chunks + 1):
        if thresholds and band(thresholds[-1], rate) == band(k, rate):
            thresholds[-1] = k
        else:
            thresholds.append(k)
    return tuple(thresholds)


def block_for_chunk_count(k, max_chunks, rate):
    """청크 수 k의 데이터 해시가 끝나는 흡수 블록 번호 (1부터)."""
    if not 1 <= k <= max_chunks:
        raise InvalidChunkCount(k, max_chunks)
    table = _BAND_TABLE.get((max_chunks, rate))
    if table is not None:
        logger.debug("using pre-computed band table for %d chunks", max_chunks)
        return bisect_left(table, k) + 1
    return band(k, rate)


# ─────────────────────────────────────────────────────────────────────
# 전상 모양 / 값 사전 검사
# ─────────────────────────────────────────────────────────────────────

def check_preimage_shape(preimages, config=DEFAULT_CONFIG):
    """전상 개수와 폭이 [136, 32·max_chunks, 136 × max_chunks] 인지 확인한다."""
    expected = config.max_chunks + 2
    if len(preimages) != expected:
        raise PreimageShapeError(None, f"전상 {len(preimages)}개, {expected}개여야 함")
    if len(preimages[0]) != CHUNK_PREIMAGE_LEN:
        raise PreimageShapeError(0, f"배치 전상 폭 {len(preimages[0])}")
    if len(preimages[1]) != DIGEST_LEN * config.max_chunks:
        raise BatchConsistencyViolation(
            Rule.DATA_HASH_LENGTH, detail=f"데이터 해시 전상 폭 {len(preimages[1])}"
        )
    for i, preimage in enumerate(preimages[2:]):
        if len(preimage) != CHUNK_PREIMAGE_LEN:
            raise PreimageShapeError(i + 2, f"청크 전상 폭 {len(preimage)}")


def _field(preimage, start, length=DIGEST_LEN):
    return bytes(preimage[start:start + length])


def check_data_hash_checksum(circuit, checksum_cells, data, k, challenge, config=DEFAULT_CONFIG):
    """규칙 3 값 검사: 선택된 블록의 체크섬 셀 값 == 앞 32·k 바이트의 RLC."""
    block = block_for_chunk_count(k, config.max_chunks, config.keccak_rate)
    if block > len(checksum_cells):
        raise BatchConsistencyViolation(
            Rule.DATA_HASH_LENGTH, detail=f"블록 {block} > 체크섬 {len(checksum_cells)}개"
        )
    expected = rlc(data[:DIGEST_LEN * k], challenge)
    if circuit.value(checksum_cells[block - 1]) != expected:
        raise BatchConsistencyViolation(
            Rule.DATA_HASH_LENGTH, detail=f"블록 {block} 체크섬이 데이터 RLC와 다름"
        )


def precheck(preimages, k, config=DEFAULT_CONFIG):
    """규칙 3을 뺀 모든 규칙의 값 수준 검사. 첫 위반에서 BatchConsistencyViolation.

    규칙 3은 체크섬 셀이 할당된 뒤 check_data_hash_checksum 이 검사한다.
    """
    batch, data, chunks = preimages[0], preimages[1], preimages[2:]

    for i, chunk in enumerate(chunks):
        if _field(chunk, 0, CHAIN_ID_LEN) != _field(batch, 0, CHAIN_ID_LEN):
            raise BatchConsistencyViolation(Rule.CHAIN_ID, i, "체인 ID 불일치")

    for i in range(len(chunks) - 1):
        if _field(chunks[i + 1], PREV_STATE_ROOT_INDEX) != _field(chunks[i], POST_STATE_ROOT_INDEX):
            raise BatchConsistencyViolation(Rule.CONTINUITY, i + 1, "prev != 이전 post")

    for i in range(k, len(chunks)):
        if _field(chunks[i], PREV_STATE_ROOT_INDEX) != _field(chunks[i], POST_STATE_ROOT_INDEX):
            raise BatchConsistencyViolation(Rule.PADDING_SHAPE, i, "패딩 prev != post")
        if any(_field(chunks[i], DATA_HASH_INDEX)):
            raise BatchConsistencyViolation(Rule.PADDING_DATA, i, "패딩 data_hash != 0")

    for i in range(k):
        if _field(data, DIGEST_LEN * i) != _field(chunks[i], DATA_HASH_INDEX):
            raise BatchConsistencyViolation(Rule.DATA_HASH_COMPOSITION, i)

    if _field(batch, PREV_STATE_ROOT_INDEX) != _field(chunks[0], PREV_STATE_ROOT_INDEX):
        raise BatchConsistencyViolation(Rule.ROOT_SHARING, 0, "prev_state_root")
    for name, index in (("post_state_root", POST_STATE_ROOT_INDEX),
                        ("withdraw_root", WITHDRAW_ROOT_INDEX)):
        if _field(batch, index) != _field(chunks[-1], index):
            raise BatchConsistencyViolation(Rule.ROOT_SHARING, len(chunks) - 1, name)

    if _field(batch, DATA_HASH_INDEX) != keccak256(data[:DIGEST_LEN * k]):
        raise BatchConsistencyViolation(Rule.DIGEST_REUSE, detail="배치 데이터 해시")


# ─────────────────────────────────────────────────────────────────────
# 연결기
# ─────────────────────────────────────────────────────────────────────

@dataclass
class LinkedHashes:
    input_cells: List[list]
    digest_cells: List[list]
    checksum_cells: List[list]
    num_valid_cell: object
    chunk_is_valid: list
    challenge: object


class HashChainLinker:
    """전상 셀을 할당하고 규칙 1–8을 제약으로 기록한다."""

    def __init__(self, config=DEFAULT_CONFIG):
        self.config = config

    def assign(self, circuit, preimages, number_of_valid_chunks, challenge=None):
        """
        Args:
            circuit: 제약을 기록할 Circuit
            preimages: BatchHash.extract_hash_preimages() 결과
            number_of_valid_chunks: 실제 청크 수 k
            challenge: 체크섬 RLC 챌린지 (없으면 전상에서 유도)

        Returns:
            LinkedHashes

        Raises:
            InvalidChunkCount: k가 [1, max_chunks] 밖일 때
            BatchConsistencyViolation: 값 사전 검사 위반
        """
        config = self.config
        k = number_of_valid_chunks
        if not 1 <= k <= config.max_chunks:
            raise InvalidChunkCount(k, config.max_chunks)
        check_preimage_shape(preimages, config)
        precheck(preimages, k, config)

        if challenge is None:
            challenge = keccak_input_challenge(preimages)

        start = time.perf_counter()
        lengths = [len(p) for p in preimages]
        lengths[1] = DIGEST_LEN * k
        inputs, digests, checksums = multi_keccak(circuit, preimages, lengths, challenge, config)
        check_data_hash_checksum(circuit, checksums[1], preimages[1], k, challenge, config)

        num_valid_cell = circuit.assign(k)
        chunk_is_valid, band_flags = self._validity_flags(circuit, num_valid_cell, k)

        self._digest_reuse(circuit, inputs, digests)
        self._root_sharing(circuit, inputs)
        self._data_hash_length(circuit, inputs, checksums, chunk_is_valid, band_flags, challenge)
        self._continuity(circuit, inputs)
        self._chain_id(circuit, inputs)
        self._padding(circuit, inputs, chunk_is_valid)
        self._data_hash_composition(circuit, inputs, chunk_is_valid)

        logger.debug(
            "linked %d preimages (%d valid chunks) in %.3fs",
            len(preimages), k, time.perf_counter() - start,
        )
        return LinkedHashes(inputs, digests, checksums, num_valid_cell, chunk_is_valid, challenge)

    def _validity_flags(self, circuit, num_valid_cell, k):
        max_chunks = self.config.max_chunks
        rate = self.config.keccak_rate
        with circuit.tagged(Rule.DATA_HASH_LENGTH):
            one_hot = [circuit.assign(1 if j == k else 0) for j in range(1, max_chunks + 1)]
            for e in one_hot:
                circuit.assert_boolean(e)
            circuit.enforce_zero(circuit.add_constant(circuit.sum(one_hot), -1))
            weighted = circuit.sum(circuit.scale(e, j) for j, e in enumerate(one_hot, 1))
            circuit.enforce_zero(circuit.sub(weighted, num_valid_cell))

            chunk_is_valid = [circuit.sum(one_hot[i:]) for i in range(max_chunks)]

            band_flags = {}
            for j, e in enumerate(one_hot, 1):
                band_flags.setdefault(band(j, rate), []).append(e)
            band_flags = {b: circuit.sum(cells) for b, cells in band_flags.items()}
        return chunk_is_valid, band_flags

    def _digest_reuse(self, circuit, inputs, digests):
        with circuit.tagged(Rule.DIGEST_REUSE):
            for i in range(4):
                for j in range(8):
                    circuit.constrain_equal(
                        inputs[0][i * 8 + j + DATA_HASH_INDEX],
                        digests[1][(3 - i) * 8 + j],
                    )

    def _root_sharing(self, circuit, inputs):
        last = len(inputs) - 1
        with circuit.tagged(Rule.ROOT_SHARING):
            for j in range(DIGEST_LEN):
                circuit.constrain_equal(
                    inputs[0][PREV_STATE_ROOT_INDEX + j], inputs[2][PREV_STATE_ROOT_INDEX + j]
                )
                circuit.constrain_equal(
                    inputs[0][POST_STATE_ROOT_INDEX + j], inputs[last][POST_STATE_ROOT_INDEX + j]
                )
                circuit.constrain_equal(
                    inputs[0][WITHDRAW_ROOT_INDEX + j], inputs[last][WITHDRAW_ROOT_INDEX + j]
                )

    def _data_hash_length(self, circuit, inputs, checksums, chunk_is_valid, band_flags, challenge):
        with circuit.tagged(Rule.DATA_HASH_LENGTH):
            r = circuit.constant(challenge)
            data = inputs[1]
            flags = [chunk_is_valid[b // DIGEST_LEN] for b in range(len(data))]
            acc = circuit.rlc_with_flags(data, flags, r)

            selected = circuit.sum(
                circuit.mul(flag, checksums[1][b - 1]) for b, flag in sorted(band_flags.items())
            )
            circuit.enforce_zero(circuit.sub(selected, acc))

    def _continuity(self, circuit, inputs):
        with circuit.tagged(Rule.CONTINUITY):
            for i in range(2, len(inputs) - 1):
                for j in range(DIGEST_LEN):
                    circuit.constrain_equal(
                        inputs[i + 1][PREV_STATE_ROOT_INDEX + j],
                        inputs[i][POST_STATE_ROOT_INDEX + j],
                    )

    def _chain_id(self, circuit, inputs):
        with circuit.tagged(Rule.CHAIN_ID):
            for i in range(2, len(inputs)):
                for j in range(CHAIN_ID_LEN):
                    circuit.constrain_equal(inputs[0][j], inputs[i][j])

    def _padding(self, circuit, inputs, chunk_is_valid):
        for i, valid in enumerate(chunk_is_valid):
            chunk = inputs[i + 2]
            with circuit.tagged(Rule.PADDING_SHAPE):
                is_padding = circuit.not_(valid)
                for j in range(DIGEST_LEN):
                    circuit.conditional_equal(
                        chunk[PREV_STATE_ROOT_INDEX + j], chunk[POST_STATE_ROOT_INDEX + j], is_padding
                    )
            with circuit.tagged(Rule.PADDING_DATA):
                for j in range(DIGEST_LEN):
                    circuit.enforce_zero(circuit.mul(chunk[DATA_HASH_INDEX + j], is_padding))

    def _data_hash_composition(self, circuit, inputs, chunk_is_valid):
        with circuit.tagged(Rule.DATA_HASH_COMPOSITION):
            for i, valid in enumerate(chunk_is_valid):
                for j in range(DIGEST_LEN):
                    circuit.conditional_equal(
                        inputs[1][DIGEST_LEN * i + j], inputs[i + 2][DATA_HASH_INDEX + j], valid
                    )

