"""
KZG Structured Reference String (SRS)
======================================

청크 증명의 인스턴스 다항식 커밋과 누산기 판정(decide)에 쓰는 공개 파라미터.

  SRS = {
      G1 powers: [G1, τ·G1, τ²·G1, ..., τ^d·G1]
      G2 powers: [G2, τ·G2]
  }

누산기 판정 e(lhs, [τ]₂) == e(rhs, [1]₂) 는 g2_powers만 사용하고,
접기 블라인딩 쌍 (s·G1, s·τG1) 은 g1_powers[0:2] 를 사용한다.

τ를 아는 사람은 거짓 증명을 만들 수 있으므로 실제 배포에서는
외부 신뢰 설정의 결과를 불러와야 한다. 여기서는 seed에서 결정론적으로 만든다.

사용 예시:
    >>> srs = SRS.generate(max_degree=48, seed=42)
    >>> len(srs.g1_powers)  # 49
"""

import hashlib
import logging
import secrets

from aggregator.field import FR, G1, G2, ec_mul, CURVE_ORDER

logger = logging.getLogger(__name__)


class SRS:
    """KZG 공개 파라미터.

    속성:
        g1_powers: [G1, τ·G1, ..., τ^d·G1]
        g2_powers: [G2, τ·G2]
        max_degree: 커밋 가능한 최대 다항식 차수 d
    """

    def __init__(self, g1_powers, g2_powers, max_degree):
        if len(g1_powers) != max_degree + 1:
            raise ValueError("g1_powers 길이는 max_degree + 1 이어야 합니다")
        if len(g2_powers) != 2:
            raise ValueError("g2_powers는 [G2, τ·G2] 두 원소여야 합니다")
        self.g1_powers = g1_powers
        self.g2_powers = g2_powers
        self.max_degree = max_degree

    @classmethod
    def generate(cls, max_degree, seed=None):
        """SRS를 생성한다.

        Args:
            max_degree: 지원할 최대 차수. 청크 인스턴스 다항식은
                        chunk_instance_len - 1 차이므로 그 이상이어야 한다.
            seed: 결정론적 생성을 위한 시드

        Returns:
            SRS
        """
        if seed is not None:
            h = hashlib.sha256(str(seed).encode()).digest()
            tau_int = int.from_bytes(h, "big") % CURVE_ORDER
        else:
            tau_int = secrets.randbelow(CURVE_ORDER - 1) + 1
        tau = FR(tau_int)

        g1_powers = []
        tau_power = FR(1)
        for _ in range(max_degree + 1):
            g1_powers.append(ec_mul(G1, tau_power))
            tau_power = tau_power * tau

        g2_powers = [G2, ec_mul(G2, tau)]
        logger.debug("generated SRS of degree %d", max_degree)
        return cls(g1_powers, g2_powers, max_degree)
