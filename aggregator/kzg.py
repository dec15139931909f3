"""
KZG 커밋먼트와 누산기 (Accumulator)
====================================

**KZG 열기 증명**:
  "p(z) = y" 의 증명은 π = q(τ)·G1, q(x) = (p(x) - y) / (x - z).
  검증: e(C - y·G1, G2) == e(π, [τ - z]₂)

**누산기 (KzgAccumulator)**:
  위 검증식을 정리하면

      e(π, [τ]₂) == e(z·π + C - y·G1, [1]₂)

  이므로 페어링 검사를 (lhs, rhs) = (π, z·π + C - y·G1) 쌍으로 미뤄 둘 수 있다.
  여러 누산기는 무작위 r로 선형결합(Σ accᵢ · rⁱ)해도 판정식이 보존되므로
  N개의 열기 검증을 페어링 한 번으로 줄일 수 있다.

사용 예시:
    >>> C = commit(poly, srs)
    >>> pi = create_witness(poly, FR(7), srs)
    >>> acc = accumulator_from_opening(C, pi, FR(7), poly.evaluate(FR(7)))
    >>> decide(acc, srs)  # True
"""

from aggregator.field import FR, G1, ec_mul, ec_add, ec_neg, ec_pairing
from aggregator.polynomial import Polynomial


def commit(poly, srs):
    """다항식을 KZG 커밋한다: C = Σᵢ cᵢ · [τⁱ]₁ = p(τ)·G1.

    Raises:
        ValueError: 다항식 차수가 SRS 최대 차수를 초과할 때
    """
    if poly.degree > srs.max_degree:
        raise ValueError(
            f"다항식 차수 {poly.degree}가 SRS 최대 차수 {srs.max_degree}를 초과합니다"
        )

    result = None
    for i, coeff in enumerate(poly.coeffs):
        if coeff == FR(0):
            continue
        result = ec_add(result, ec_mul(srs.g1_powers[i], coeff))
    return result


def create_witness(poly, point, srs):
    """열기 증명 π = commit((p(x) - p(z)) / (x - z)) 를 만든다."""
    if not isinstance(point, FR):
        point = FR(point)

    y = poly.evaluate(point)
    quotient, remainder = (poly - Polynomial([y])).divide_by_linear(point)

    if remainder != FR(0):
        raise ValueError("열기 증명 생성 실패: 나머지가 0이 아닙니다")
    return commit(quotient, srs)


def verify_opening(commitment, proof, point, evaluation, srs):
    """e(C - y·G1, G2) == e(π, [τ - z]₂) 를 직접 확인한다."""
    if not isinstance(point, FR):
        point = FR(point)
    if not isinstance(evaluation, FR):
        evaluation = FR(evaluation)

    tau_minus_z_g2 = ec_add(srs.g2_powers[1], ec_neg(ec_mul(srs.g2_powers[0], point)))
    c_minus_y = ec_add(commitment, ec_neg(ec_mul(G1, evaluation)))

    lhs = ec_pairing(srs.g2_powers[0], c_minus_y)
    rhs = ec_pairing(tau_minus_z_g2, proof)
    return lhs == rhs


# ─────────────────────────────────────────────────────────────────────
# 누산기
# ─────────────────────────────────────────────────────────────────────

class KzgAccumulator:
    """지연된 페어링 검사 쌍 (lhs, rhs). 생성 후 변경하지 않는다.

    판정식: e(lhs, [τ]₂) == e(rhs, [1]₂)
    """

    __slots__ = ("lhs", "rhs")

    def __init__(self, lhs, rhs):
        object.__setattr__(self, "lhs", lhs)
        object.__setattr__(self, "rhs", rhs)

    def __setattr__(self, name, value):
        raise AttributeError("KzgAccumulator는 불변입니다")

    @classmethod
    def identity(cls):
        """두 점 모두 무한원점인 누산기. 항상 판정을 통과한다."""
        return cls(None, None)

    def is_identity(self):
        return self.lhs is None and self.rhs is None

    def scale(self, scalar):
        return KzgAccumulator(ec_mul(self.lhs, scalar), ec_mul(self.rhs, scalar))

    def __add__(self, other):
        return KzgAccumulator(ec_add(self.lhs, other.lhs), ec_add(self.rhs, other.rhs))

    def __eq__(self, other):
        if not isinstance(other, KzgAccumulator):
            return NotImplemented
        return self.lhs == other.lhs and self.rhs == other.rhs

    def __hash__(self):
        return hash((self.lhs, self.rhs))

    def __repr__(self):
        def short(p):
            return "O" if p is None else f"({str(int(p[0]))[:8]}…)"
        return f"KzgAccumulator(lhs={short(self.lhs)}, rhs={short(self.rhs)})"


def accumulator_from_opening(commitment, proof, point, evaluation):
    """열기 주장 (C, π, z, y) 를 누산기 (π, z·π + C - y·G1) 로 바꾼다."""
    if not isinstance(point, FR):
        point = FR(point)
    if not isinstance(evaluation, FR):
        evaluation = FR(evaluation)
    rhs = ec_add(ec_mul(proof, point), commitment)
    rhs = ec_add(rhs, ec_neg(ec_mul(G1, evaluation)))
    return KzgAccumulator(proof, rhs)


def decide(accumulator, srs):
    """누산기를 판정한다: e(lhs, [τ]₂) == e(rhs, [1]₂)."""
    lhs = ec_pairing(srs.g2_powers[1], accumulator.lhs)
    rhs = ec_pairing(srs.g2_powers[0], accumulator.rhs)
    return lhs == rhs
