"""
Keccak 블랙박스
================

전상(preimage)마다 다음 셀들을 회로에 할당하고, 그 관계를 룩업으로 기록한다.

  - 입력 셀: 전상 바이트를 전상 순서대로
  - 다이제스트 셀: keccak256 결과 32바이트를 **워드 역순**으로
  - 체크섬 셀: 흡수 블록마다 하나, 그 블록까지 흡수된 바이트의 RLC

**워드 역순 (word reversal)**:
  다이제스트를 8바이트 워드 4개로 보고 워드 순서를 뒤집는다.
  전상에 다시 쓰인 해시 값과 다이제스트를 비교할 때는

      preimage[i·8 + j] == digest_cells[(3 - i)·8 + j]

**행(row) 배치**:
  블록 하나는 rows_per_block = keccak_rows · 25 행을 차지한다.
  블록 시작 행을 base라 할 때

      입력 바이트 8j + k      → base + (j + 1)·keccak_rows + k
      다이제스트 바이트 8j + k → base + rows_per_block - 4·keccak_rows + j·keccak_rows + k

  길이 L의 전상은 L // rate + 1 개의 블록을 차지한다 (마지막 블록은 패딩).

사용 예시:
    >>> keccak256(b"")[:4].hex()
    'c5d24601'
    >>> inputs, digests = get_indices((136,), 12, 136)[0]
    >>> inputs[:3], digests[:3]
    ((12, 13, 14), (552, 553, 554))
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache

from Crypto.Hash import keccak

from aggregator.constants import DIGEST_LEN
from aggregator.field import FR
from aggregator.transcript import Transcript

logger = logging.getLogger(__name__)


def keccak256(data):
    h = keccak.new(digest_bits=256)
    h.update(bytes(data))
    return h.digest()


def word_reverse(digest):
    """32바이트 다이제스트의 8바이트 워드 순서를 뒤집는다."""
    if len(digest) != DIGEST_LEN:
        raise ValueError(f"다이제스트는 {DIGEST_LEN}바이트여야 합니다: {len(digest)}")
    return b"".join(digest[8 * (3 - i):8 * (4 - i)] for i in range(4))


def rlc(values, r):
    """무작위 선형결합: values[0]·r^(n-1) + ... + values[n-1]. 빈 입력은 0."""
    if not isinstance(r, FR):
        r = FR(r)
    acc = FR(0)
    for i, v in enumerate(values):
        acc = FR(v) if i == 0 else acc * r + v
    return acc


def num_blocks(length, rate):
    return length // rate + 1


@lru_cache(maxsize=64)
def get_indices(lengths, keccak_rows, rate):
    """전상 길이 목록에 대해 입력 바이트와 다이제스트 바이트의 행 번호를 계산한다.

    Args:
        lengths: 전상 바이트 길이 튜플 (캐시 키이므로 튜플이어야 함)
        keccak_rows: 라운드당 행 수
        rate: 흡수 블록 폭 (bytes)

    Returns:
        tuple: 전상마다 (입력 행 튜플, 다이제스트 행 튜플).
               입력 행은 패딩을 포함한 블록 전체 (num_blocks·rate 개).
    """
    rows_per_block = keccak_rows * 25
    result = []
    block_ctr = 0
    for length in lengths:
        blocks = num_blocks(length, rate)
        input_rows = []
        digest_rows = []
        for block in range(blocks):
            base = block_ctr * rows_per_block
            for j in range(rate // 8):
                for k in range(8):
                    input_rows.append(base + (j + 1) * keccak_rows + k)
            if block == blocks - 1:
                for j in range(4):
                    for k in range(8):
                        digest_rows.append(
                            base + rows_per_block - 4 * keccak_rows + j * keccak_rows + k
                        )
            block_ctr += 1
        result.append((tuple(input_rows), tuple(digest_rows)))
    return tuple(result)


def checksum_rows(lengths, keccak_rows, rate):
    """흡수 블록마다 체크섬이 놓이는 행 (블록이 끝나는 다음 행)."""
    rows_per_block = keccak_rows * 25
    result = []
    block_ctr = 0
    for length in lengths:
        rows = []
        for _ in range(num_blocks(length, rate)):
            block_ctr += 1
            rows.append(block_ctr * rows_per_block)
        result.append(tuple(rows))
    return tuple(result)


def keccak_input_challenge(preimages):
    """전상 전체를 흡수한 뒤 RLC 챌린지를 만든다."""
    t = Transcript(b"keccak-input")
    for preimage in preimages:
        t.append_bytes(b"preimage", bytes(preimage))
    return t.challenge_scalar(b"r")


def block_checksums(data, length, challenge, rate):
    """블록 b까지 흡수된 바이트 data[:min((b+1)·rate, length)] 의 RLC 목록."""
    return [
        rlc(data[:min((b + 1) * rate, length)], challenge)
        for b in range(num_blocks(len(data), rate))
    ]


class KeccakLookup:
    """전상 하나에 대한 Keccak 표 룩업 기록.

    check()는 입력 셀 값으로부터 다이제스트와 블록 체크섬을 다시 계산해
    다이제스트 셀, 체크섬 셀과 비교한다.
    """

    def __init__(self, input_cells, digest_cells, checksum_cells, length, challenge, rate):
        self.input_cells = input_cells
        self.digest_cells = digest_cells
        self.checksum_cells = checksum_cells
        self.length = length
        self.challenge = challenge
        self.rate = rate
        self.tag = None

    def check(self, circuit):
        data = []
        for cell in self.input_cells:
            v = int(circuit.value(cell))
            if v > 0xFF:
                return f"입력 셀 {cell}이 바이트가 아닙니다"
            data.append(v)
        data = bytes(data)

        expected = word_reverse(keccak256(data[:self.length]))
        for cell, byte in zip(self.digest_cells, expected):
            if circuit.value(cell) != FR(byte):
                return f"다이제스트 셀 {cell} 불일치"

        checksums = block_checksums(data, self.length, self.challenge, self.rate)
        for cell, value in zip(self.checksum_cells, checksums):
            if circuit.value(cell) != value:
                return f"체크섬 셀 {cell} 불일치"
        return None


def multi_keccak(circuit, preimages, lengths, challenge, config):
    """여러 전상을 해싱하고 입력 / 다이제스트 / 체크섬 셀을 할당한다.

    Args:
        circuit: 셀을 할당할 Circuit
        preimages: 전상 바이트열 리스트 (고정 폭)
        lengths: 각 전상에서 실제로 해싱할 앞부분 길이
        challenge: 체크섬 RLC 챌린지 (FR)
        config: AggregatorConfig

    Returns:
        tuple: (input_cells, digest_cells, checksum_cells) 각각 전상별 리스트.
               input_cells[i]는 전상 i의 바이트 수만큼만 담는다.
    """
    if len(preimages) != len(lengths):
        raise ValueError("preimages와 lengths의 개수가 다릅니다")
    for preimage, length in zip(preimages, lengths):
        if length > len(preimage):
            raise ValueError(f"해싱 길이 {length}가 전상 길이 {len(preimage)}를 넘습니다")

    rate = config.keccak_rate
    start = time.perf_counter()

    def hash_one(i):
        return word_reverse(keccak256(preimages[i][:lengths[i]]))

    with ThreadPoolExecutor(max_workers=config.workers_for(len(preimages))) as executor:
        digests = list(executor.map(hash_one, range(len(preimages))))

    widths = tuple(len(p) for p in preimages)
    layout = get_indices(widths, config.keccak_rows, rate)
    sums_layout = checksum_rows(widths, config.keccak_rows, rate)

    input_cells, digest_cells, checksum_cells = [], [], []
    for i, preimage in enumerate(preimages):
        input_rows, digest_rows = layout[i]
        inputs = [
            circuit.assign(byte, column="keccak", row=row)
            for byte, row in zip(preimage, input_rows)
        ]
        digest = [
            circuit.assign(byte, column="keccak", row=row)
            for byte, row in zip(digests[i], digest_rows)
        ]
        sums = [
            circuit.assign(value, column="keccak", row=row)
            for value, row in zip(
                block_checksums(preimage, lengths[i], challenge, rate), sums_layout[i]
            )
        ]
        circuit.add_lookup(KeccakLookup(inputs, digest, sums, lengths[i], challenge, rate))
        input_cells.append(inputs)
        digest_cells.append(digest)
        checksum_cells.append(sums)

    logger.debug(
        "multi_keccak assigned %d preimages in %.3fs",
        len(preimages), time.perf_counter() - start,
    )
    return input_cells, digest_cells, checksum_cells
