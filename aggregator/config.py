"""
집계기 설정
============

배치 용량, 림 분해 폭, Keccak 행 배수 같은 조정 값을 하나의 불변 객체로
묶어 모든 생성자에 명시적으로 전달한다. 프로세스 전역 상태는 읽지 않으며,
환경 변수는 ``from_env`` 를 직접 호출할 때만 참조한다.

사용 예시:
    >>> config = AggregatorConfig(max_chunks=4)
    >>> config.instance_len   # 4·3 + 32 + 1 = 45
    >>> AggregatorConfig.from_env({"AGGREGATOR_KECCAK_ROWS": "20"}).keccak_rows
    20
"""

import logging
import os
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Optional

from aggregator.constants import (
    MAX_CHUNKS, LIMBS, BITS, DIGEST_LEN, DEFAULT_KECCAK_ROWS, KECCAK_RATE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatorConfig:
    """집계 파라미터.

    속성:
        max_chunks: 배치의 고정 청크 용량
        limbs, bits: FQ 좌표 하나를 bits 폭 림 limbs개로 분해
        keccak_rows: Keccak 라운드 하나가 차지하는 행 수
        keccak_rate: 흡수 블록 폭 (bytes)
        max_workers: 자식 증명 / 전상 해싱 스레드 풀 크기 (None이면 min(N, 4))
        zk_blinding: 접기에 무작위 블라인딩 누산기를 더할지 여부
    """
    max_chunks: int = MAX_CHUNKS
    limbs: int = LIMBS
    bits: int = BITS
    keccak_rows: int = DEFAULT_KECCAK_ROWS
    keccak_rate: int = KECCAK_RATE
    max_workers: Optional[int] = None
    zk_blinding: bool = True

    def __post_init__(self):
        if self.max_chunks < 1:
            raise ValueError("max_chunks는 1 이상이어야 합니다")
        if self.bits > 128:
            raise ValueError("bits는 128 이하여야 합니다")
        if self.limbs * self.bits < 254:
            raise ValueError("limbs·bits는 254 이상이어야 합니다 (FQ 원소 하나를 담아야 함)")
        if self.keccak_rows < 8:
            raise ValueError("keccak_rows는 8 이상이어야 합니다")
        # keccak256 은 항상 136바이트 블록으로 흡수한다
        if self.keccak_rate != KECCAK_RATE:
            raise ValueError(f"keccak_rate는 Keccak-256 흡수 폭 {KECCAK_RATE}이어야 합니다")
        if self.max_workers is not None and self.max_workers <= 0:
            raise ValueError("max_workers는 양수여야 합니다")

    # 파생 값

    @property
    def acc_len(self):
        return 4 * self.limbs

    @property
    def instance_len(self):
        """집계 인스턴스 길이: 누산기 림 ‖ 해시 32바이트 ‖ 유효 청크 수."""
        return self.acc_len + DIGEST_LEN + 1

    @property
    def chunk_instance_len(self):
        return self.acc_len + DIGEST_LEN

    @property
    def rows_per_block(self):
        return self.keccak_rows * 25

    def workers_for(self, n):
        if self.max_workers is not None:
            return self.max_workers
        return max(1, min(n, 4))

    # 로딩

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregatorConfig":
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning(f"Unknown aggregator config key ignored: {key}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(cls, environ=None, prefix="AGGREGATOR") -> "AggregatorConfig":
        """``{prefix}_{FIELD}`` 환경 변수로 기본값을 덮어쓴다."""
        if environ is None:
            environ = os.environ
        values = {}
        for f in fields(cls):
            key = f"{prefix}_{f.name.upper()}"
            if key in environ:
                values[f.name] = _parse_env_value(environ[key])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_env_value(value: str) -> Any:
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    if value.lower() in ("none", ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"정수 또는 불리언이 아닌 설정 값: {value!r}")


DEFAULT_CONFIG = AggregatorConfig()
