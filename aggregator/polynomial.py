"""
인스턴스 다항식 (Polynomial)
=============================

청크 증명은 공개 인스턴스 값 inst₀, inst₁, ... 을 그대로 계수로 쓰는
인스턴스 다항식 p(x) = Σ instᵢ · xⁱ 에 대한 KZG 열기이다.
여기서는 그 열기에 필요한 연산만 둔다.

  - evaluate: Horner 평가 p(z)
  - divide_by_linear: 합성 나눗셈 p(x) = (x - z)·q(x) + r
  - 뺄셈: 열기의 분자 p(x) - y

사용 예시:
    >>> p = Polynomial([FR(1), FR(2), FR(3)])  # 1 + 2x + 3x²
    >>> p.evaluate(FR(2))  # FR(17)
    >>> q, r = (p - Polynomial([FR(17)])).divide_by_linear(FR(2))
    >>> r  # FR(0)
"""

from aggregator.field import FR


def _as_fr(value):
    return value if isinstance(value, FR) else FR(value)


class Polynomial:
    """FR 계수 리스트 [c₀, c₁, ...] 로 표현한 다항식. 최고차 0 계수는 잘라낸다."""

    def __init__(self, coeffs=None):
        coeffs = [_as_fr(c) for c in (coeffs or [])]
        while coeffs and coeffs[-1] == FR(0):
            coeffs.pop()
        self.coeffs = coeffs or [FR(0)]

    @property
    def degree(self):
        # 영 다항식의 차수는 0으로 둔다
        return len(self.coeffs) - 1

    def evaluate(self, point):
        point = _as_fr(point)
        result = FR(0)
        for coeff in reversed(self.coeffs):
            result = result * point + coeff
        return result

    def divide_by_linear(self, point):
        """(x - point) 로 합성 나눗셈을 한다.

        Returns:
            tuple: (몫 Polynomial, 나머지 FR). 나머지는 p(point) 와 같다.
        """
        point = _as_fr(point)
        carry = FR(0)
        quotient = []
        for coeff in reversed(self.coeffs):
            carry = carry * point + coeff
            quotient.append(carry)
        remainder = quotient.pop()
        quotient.reverse()
        return Polynomial(quotient), remainder

    def __sub__(self, other):
        width = max(len(self.coeffs), len(other.coeffs))
        a = self.coeffs + [FR(0)] * (width - len(self.coeffs))
        b = other.coeffs + [FR(0)] * (width - len(other.coeffs))
        return Polynomial([x - y for x, y in zip(a, b)])

    def __eq__(self, other):
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self.coeffs == other.coeffs

    def __repr__(self):
        return f"Polynomial({[int(c) for c in self.coeffs]})"
