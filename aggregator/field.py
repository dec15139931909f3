"""
집계기 기반 모듈: 유한체(Finite Field), 타원곡선 연산, 림(limb) 분해
=====================================================================

이 모듈은 청크 증명 집계 전체에서 사용되는 기본 대수적 도구를 정의한다.

**유한체 FR / FQ**:
  - FR: bn128 곡선의 스칼라 필드. 인스턴스 원소, 챌린지, RLC 값의 산술 단위.
  - FQ: bn128 곡선의 기저 필드. G1 점의 좌표가 사는 필드.
  FQ 원소(≈ 2^254)는 FR 원소 하나에 그대로 담을 수 없으므로
  (비원시 non-native 산술), 공개 인스턴스에 실을 때는 고정 폭 림으로 쪼갠다.

**타원곡선 연산**:
  KZG 누산기(accumulator)의 접기(folding)와 페어링 검사를 위한 G1, G2 연산.

**림 분해 (Limb Decomposition)**:
  value = Σᵢ limbᵢ · 2^(bits·i)   (작은 림이 먼저, little-limb-first)

사용 예시:
    >>> from aggregator.field import FR, G1, ec_mul, fe_to_limbs
    >>> P = ec_mul(G1, 5)                # 5·G1
    >>> fe_to_limbs(int(P[0]), 3, 88)     # x 좌표의 림 3개
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import bn128


# ─────────────────────────────────────────────────────────────────────
# 유한체(Finite Field) FR
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소.

    bn128.curve_order (≈ 2^254) 위의 모듈러 산술을 지원한다.
    py_ecc의 FQ 클래스를 상속하여 +, -, *, /, ** 등의 필드 연산을 제공한다.

    예시:
        >>> x = FR(3)
        >>> x * x          # FR(9)
        >>> FR(1) / FR(3)   # 3의 모듈러 역원
    """
    field_modulus = bn128.curve_order


# 곡선 위수 (스칼라 필드 크기)
CURVE_ORDER = bn128.curve_order

# 기저 필드 크기 (G1 좌표의 범위)
FIELD_MODULUS = bn128.field_modulus


# ─────────────────────────────────────────────────────────────────────
# 타원곡선 상수 및 연산
# ─────────────────────────────────────────────────────────────────────

# G1 그룹 생성자 (generator)
G1 = bn128.G1

# G2 그룹 생성자 (generator)
G2 = bn128.G2

# 영점 (point at infinity) - 항등원
Z1 = None  # bn128에서 G1의 항등원은 None으로 표현


def ec_mul(point, scalar):
    """타원곡선 스칼라 곱셈: scalar · point.

    Args:
        point: G1 또는 G2 위의 점 (None이면 무한원점)
        scalar: 정수 또는 FR 원소

    Returns:
        scalar · point (같은 그룹의 점)
    """
    if isinstance(scalar, FR):
        scalar = int(scalar)
    if point is None:
        return None
    return bn128.multiply(point, scalar % CURVE_ORDER)


def ec_add(p1, p2):
    """타원곡선 점 덧셈: p1 + p2. 무한원점(None)을 항등원으로 처리한다."""
    if p1 is None:
        return p2
    if p2 is None:
        return p1
    return bn128.add(p1, p2)


def ec_neg(point):
    """타원곡선 점의 역원 (negation): -point."""
    if point is None:
        return None
    return bn128.neg(point)


def ec_pairing(g2_point, g1_point):
    """쌍선형 페어링 e(G1, G2) → GT.

    주의:
        py_ecc.bn128.pairing의 인자 순서는 (G2, G1)이다.
        G1 쪽이 무한원점이면 결과는 GT의 항등원이다.
    """
    if g1_point is None:
        return bn128.FQ12.one()
    return bn128.pairing(g2_point, g1_point)


def is_on_curve(point):
    """G1 점이 곡선 y² = x³ + 3 위에 있는지 확인한다. 무한원점은 True."""
    if point is None:
        return True
    return bn128.is_on_curve(point, bn128.b)


# ─────────────────────────────────────────────────────────────────────
# 림(limb) 분해
# ─────────────────────────────────────────────────────────────────────

def fe_to_limbs(value, limbs, bits):
    """정수를 bits 폭의 림 limbs개로 분해한다 (작은 림 먼저).

    Args:
        value: 분해할 음이 아닌 정수 (FQ 원소이면 int로 변환)
        limbs: 림 개수
        bits: 림 하나의 비트 폭

    Returns:
        list[int]: [limb₀, limb₁, ...], value = Σ limbᵢ · 2^(bits·i)

    Raises:
        ValueError: value가 limbs·bits 비트에 들어가지 않을 때

    예시:
        >>> fe_to_limbs(2**88 + 5, 3, 88)  # [5, 1, 0]
    """
    value = int(value)
    if value < 0 or value >> (limbs * bits):
        raise ValueError(f"값이 {limbs}×{bits} 비트 림에 들어가지 않습니다: {value}")
    mask = (1 << bits) - 1
    return [(value >> (bits * i)) & mask for i in range(limbs)]


def limbs_to_fe(limbs, bits):
    """림 리스트를 정수로 재구성한다: Σ limbᵢ · 2^(bits·i)."""
    value = 0
    for i, limb in enumerate(limbs):
        value += int(limb) << (bits * i)
    return value


# ─────────────────────────────────────────────────────────────────────
# G1 점 인코딩
# ─────────────────────────────────────────────────────────────────────

def encode_g1(point):
    """G1 점을 64바이트 (x‖y, 빅엔디안)로 인코딩한다. 무한원점은 64바이트의 0."""
    if point is None:
        return b"\x00" * 64
    x, y = point
    return int(x).to_bytes(32, "big") + int(y).to_bytes(32, "big")


def decode_g1(data):
    """64바이트를 G1 점으로 디코딩한다.

    Raises:
        ValueError: 길이가 64가 아니거나, 좌표가 기저 필드를 벗어나거나,
                    점이 곡선 위에 있지 않을 때
    """
    if len(data) != 64:
        raise ValueError(f"G1 인코딩은 64바이트여야 합니다: {len(data)}")
    x = int.from_bytes(data[:32], "big")
    y = int.from_bytes(data[32:], "big")
    return point_from_coordinates(x, y)


def point_from_coordinates(x, y):
    """(x, y) 정수 좌표로부터 G1 점을 만든다. (0, 0)은 무한원점이다."""
    if x == 0 and y == 0:
        return None
    if x >= FIELD_MODULUS or y >= FIELD_MODULUS:
        raise ValueError("좌표가 기저 필드 범위를 벗어났습니다")
    point = (bn128.FQ(x), bn128.FQ(y))
    if not is_on_curve(point):
        raise ValueError("점이 곡선 위에 있지 않습니다")
    return point
