"""
공개 인스턴스 조립 (PublicInstanceAssembler)
=============================================

접힌 누산기, 배치 공개 입력 해시, 유효 청크 수를 외부 검증자가 보는
평평한 FR 벡터로 직렬화한다. 원소 순서는 하위 검증자와의 계약이므로
바꾸려면 INSTANCE_VERSION을 올려야 한다.

  [lhs.x 림 ×L, lhs.y 림 ×L, rhs.x 림 ×L, rhs.y 림 ×L,   (4·L 원소)
   공개 입력 해시 바이트 ×32,                             (바이트 하나당 원소 하나)
   유효 청크 수]                                          (1 원소)

각 좌표는 bits 폭 림 L개로 나뉘며 작은 림이 먼저 온다:
    x = Σ limbᵢ · 2^(bits·i)
무한원점은 (0, 0) 좌표, 즉 모든 림이 0이다.

사용 예시:
    >>> inst = assemble(acc, pi_hash, 2, config)
    >>> disassemble(inst, config) == (acc, pi_hash, 2)
    True
"""

from aggregator.config import DEFAULT_CONFIG
from aggregator.constants import DIGEST_LEN
from aggregator.field import FR, fe_to_limbs, limbs_to_fe, point_from_coordinates
from aggregator.kzg import KzgAccumulator

INSTANCE_VERSION = 1


def _point_to_limbs(point, limbs, bits):
    if point is None:
        return [0] * (2 * limbs)
    return fe_to_limbs(int(point[0]), limbs, bits) + fe_to_limbs(int(point[1]), limbs, bits)


def _point_from_limbs(values, limbs, bits):
    x = limbs_to_fe(values[:limbs], bits)
    y = limbs_to_fe(values[limbs:2 * limbs], bits)
    return point_from_coordinates(x, y)


def accumulator_to_limbs(accumulator, config=DEFAULT_CONFIG):
    """누산기 → 4·limbs 개의 FR 림."""
    values = (
        _point_to_limbs(accumulator.lhs, config.limbs, config.bits)
        + _point_to_limbs(accumulator.rhs, config.limbs, config.bits)
    )
    return [FR(v) for v in values]


def accumulator_from_limbs(values, config=DEFAULT_CONFIG):
    """4·limbs 개의 림 → 누산기.

    Raises:
        ValueError: 림 개수가 틀리거나, 림이 bits 폭을 넘거나, 점이 곡선 밖일 때
    """
    if len(values) != config.acc_len:
        raise ValueError(f"누산기 림은 {config.acc_len}개여야 합니다: {len(values)}")
    ints = [int(v) for v in values]
    for v in ints:
        if v >> config.bits:
            raise ValueError(f"림 값이 {config.bits}비트를 넘습니다")
    half = 2 * config.limbs
    lhs = _point_from_limbs(ints[:half], config.limbs, config.bits)
    rhs = _point_from_limbs(ints[half:], config.limbs, config.bits)
    return KzgAccumulator(lhs, rhs)


def assemble(folded, public_input_hash, number_of_valid_chunks, config=DEFAULT_CONFIG):
    """집계 회로의 공개 인스턴스 벡터를 만든다."""
    if len(public_input_hash) != DIGEST_LEN:
        raise ValueError(f"공개 입력 해시는 {DIGEST_LEN}바이트여야 합니다")
    if not 1 <= number_of_valid_chunks <= config.max_chunks:
        raise ValueError(f"유효 청크 수 {number_of_valid_chunks}가 범위를 벗어났습니다")
    instance = accumulator_to_limbs(folded, config)
    instance.extend(FR(b) for b in public_input_hash)
    instance.append(FR(number_of_valid_chunks))
    return instance


def disassemble(instance, config=DEFAULT_CONFIG):
    """인스턴스 벡터 → (누산기, 공개 입력 해시 bytes, 유효 청크 수).

    Raises:
        ValueError: 길이가 틀리거나 해시 원소가 바이트 범위를 벗어날 때
    """
    if len(instance) != config.instance_len:
        raise ValueError(f"인스턴스 길이는 {config.instance_len}이어야 합니다: {len(instance)}")
    acc_len = config.acc_len
    accumulator = accumulator_from_limbs(instance[:acc_len], config)
    hash_values = [int(v) for v in instance[acc_len:acc_len + DIGEST_LEN]]
    if any(v > 0xFF for v in hash_values):
        raise ValueError("공개 입력 해시 원소가 바이트 범위를 벗어났습니다")
    return accumulator, bytes(hash_values), int(instance[-1])
