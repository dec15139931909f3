"""
Fiat-Shamir 트랜스크립트
=========================

SHA-256 상태를 누적하여 결정론적 챌린지를 만든다.

집계에서 쓰이는 챌린지:
  - 청크 증명의 평가 점 z (vk 다이제스트, 인스턴스, 커밋먼트 흡수 후)
  - 내장 누산기를 자식 누산기에 합칠 때의 결합 계수
  - N개 누산기를 접는 r (모든 누산기를 흡수한 뒤에만 생성)
  - Keccak 전상 RLC 챌린지

사용 예시:
    >>> t = Transcript(b"fold")
    >>> t.append_accumulator(b"acc", acc)
    >>> r = t.challenge_scalar(b"r")
"""

import hashlib

from aggregator.field import FR, CURVE_ORDER, encode_g1


class Transcript:
    """SHA-256 기반 Fiat-Shamir 트랜스크립트.

    Prover와 Verifier가 같은 순서로 같은 레이블과 데이터를 넣으면
    같은 챌린지를 얻는다. 모든 입력은 레이블과 함께 추가한다.
    """

    def __init__(self, label=b"aggregator"):
        self.state = bytearray()
        self.state.extend(label)

    def append_scalar(self, label, scalar):
        self.state.extend(label)
        val = int(scalar) % CURVE_ORDER
        self.state.extend(val.to_bytes(32, "big"))

    def append_point(self, label, point):
        """G1 점을 64바이트 (x‖y) 로 추가한다. 무한원점은 64바이트의 0."""
        self.state.extend(label)
        self.state.extend(encode_g1(point))

    def append_bytes(self, label, data):
        """가변 길이 바이트열. 길이를 먼저 넣어 경계를 모호하지 않게 한다."""
        self.state.extend(label)
        self.state.extend(len(data).to_bytes(8, "big"))
        self.state.extend(data)

    def append_accumulator(self, label, accumulator):
        self.state.extend(label)
        self.state.extend(encode_g1(accumulator.lhs))
        self.state.extend(encode_g1(accumulator.rhs))

    def challenge_scalar(self, label):
        """현재 상태의 SHA-256을 FR로 축소한 챌린지. 해시는 상태에 다시 추가된다."""
        self.state.extend(label)
        h = hashlib.sha256(bytes(self.state)).digest()
        challenge = FR(int.from_bytes(h, "big") % CURVE_ORDER)
        self.state.extend(h)
        return challenge
