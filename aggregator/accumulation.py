"""
누산기 접기 (AccumulatorFolder)
================================

N개 자식 증명의 누산기를 하나로 접는다.

  1. 자식마다 간결 검증으로 누산기 accᵢ 를 재구성 (서로 독립, 스레드 풀)
  2. 모든 누산기를 트랜스크립트에 흡수한 **뒤에** 챌린지 r 생성
  3. Horner 법으로 folded = Σ accᵢ · rⁱ  (lhs, rhs 각각)

r은 모든 accᵢ 가 정해진 뒤에야 알 수 있으므로, 잘못된 자식 하나가 섞이면
접힌 누산기도 압도적 확률로 판정을 통과하지 못한다.

**블라인딩**:
  zk_blinding이 켜져 있으면 무작위 s로 (s·G1, s·τG1) 쌍을 하나 더 접는다.
  이 쌍은 e(s·G1, [τ]₂) == e(s·τG1, [1]₂) 이므로 항상 유효하다.
  블라인딩 쌍의 인코딩이 접기 증명(as_proof)이 된다.

사용 예시:
    >>> folder = AccumulatorFolder(config)
    >>> folded, as_proof = folder.extract_accumulators_and_proof(srs, snarks)
    >>> decide(folded, srs)  # True
"""

import logging
import secrets
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from aggregator.config import DEFAULT_CONFIG
from aggregator.constants import DIGEST_LEN
from aggregator.errors import InstanceMismatch, MalformedChildProof
from aggregator.field import CURVE_ORDER, decode_g1, ec_mul, encode_g1
from aggregator.kzg import KzgAccumulator
from aggregator.snark import succinct_verify
from aggregator.transcript import Transcript

logger = logging.getLogger(__name__)


def extract_accumulators(snarks, config=DEFAULT_CONFIG):
    """자식 증명마다 간결 검증을 병렬로 수행한다. 결과는 자식 순서를 유지한다.

    모든 작업이 끝난 뒤 가장 앞선 자식의 오류를 다시 던진다.
    """
    if not snarks:
        return []
    start = time.perf_counter()
    results = [None] * len(snarks)
    errors = {}

    with ThreadPoolExecutor(max_workers=config.workers_for(len(snarks))) as executor:
        future_to_idx = {
            executor.submit(succinct_verify, snark, config, idx): idx
            for idx, snark in enumerate(snarks)
        }
        for future in as_completed(future_to_idx):
            idx = future_to_idx[future]
            try:
                results[idx] = future.result()
            except MalformedChildProof as exc:
                errors[idx] = exc

    if errors:
        raise errors[min(errors)]
    logger.debug(
        "succinct verification of %d snarks took %.3fs",
        len(snarks), time.perf_counter() - start,
    )
    return results


def _blinding(srs, rng):
    if rng is None:
        s = secrets.randbelow(CURVE_ORDER - 1) + 1
    else:
        s = rng.randrange(1, CURVE_ORDER)
    return KzgAccumulator(ec_mul(srs.g1_powers[0], s), ec_mul(srs.g1_powers[1], s))


def _folding_challenge(accumulators, blinding):
    t = Transcript(b"fold")
    for acc in accumulators:
        t.append_accumulator(b"acc", acc)
    if blinding is not None:
        t.append_accumulator(b"blind", blinding)
    return t.challenge_scalar(b"r")


def _horner(accumulators, r):
    """Σ accᵢ · rⁱ"""
    result = accumulators[-1]
    for acc in reversed(accumulators[:-1]):
        result = result.scale(r) + acc
    return result


def fold(accumulators, srs, config=DEFAULT_CONFIG, rng=None):
    """누산기들을 무작위 선형결합으로 접는다.

    Args:
        accumulators: 자식 누산기 리스트 (모두 계산된 뒤여야 함)
        srs: 블라인딩 쌍을 만들 SRS
        config: zk_blinding 여부
        rng: 블라인딩 스칼라용 random.Random (None이면 secrets)

    Returns:
        tuple: (접힌 KzgAccumulator, as_proof bytes)
    """
    if not accumulators:
        raise ValueError("접을 누산기가 없습니다")
    start = time.perf_counter()
    blinding = _blinding(srs, rng) if config.zk_blinding else None
    r = _folding_challenge(accumulators, blinding)

    terms = list(accumulators)
    if blinding is not None:
        terms.append(blinding)
    folded = _horner(terms, r)

    as_proof = b""
    if blinding is not None:
        as_proof = encode_g1(blinding.lhs) + encode_g1(blinding.rhs)
    logger.debug("folded %d accumulators in %.3fs", len(accumulators), time.perf_counter() - start)
    return folded, as_proof


def verify_fold(accumulators, folded, as_proof):
    """챌린지를 재생하여 folded가 accumulators(와 블라인딩 쌍)의 접기인지 확인한다."""
    blinding = None
    if as_proof:
        if len(as_proof) != 128:
            return False
        try:
            blinding = KzgAccumulator(decode_g1(as_proof[:64]), decode_g1(as_proof[64:]))
        except ValueError:
            return False
    r = _folding_challenge(accumulators, blinding)
    terms = list(accumulators)
    if blinding is not None:
        terms.append(blinding)
    return _horner(terms, r) == folded


def check_instances(batch, snarks, config=DEFAULT_CONFIG):
    """자식 i 인스턴스의 마지막 32원소가 슬롯 i 청크의 공개 입력 해시와 같은지 확인한다."""
    if len(snarks) != len(batch.slots):
        raise MalformedChildProof(
            None, f"자식 증명 {len(snarks)}개, 슬롯 수 {len(batch.slots)}개여야 합니다"
        )
    for i, (slot, snark) in enumerate(zip(batch.slots, snarks)):
        expected = list(slot.chunk.public_input_hash())
        found = list(snark.instances[config.acc_len:config.acc_len + DIGEST_LEN])
        if len(found) != DIGEST_LEN:
            raise MalformedChildProof(i, f"인스턴스 길이 {len(snark.instances)}")
        if [int(v) for v in found] != expected:
            raise InstanceMismatch(i)


class AccumulatorFolder:
    def __init__(self, config=DEFAULT_CONFIG):
        self.config = config

    def extract_accumulators(self, snarks):
        return extract_accumulators(snarks, self.config)

    def extract_accumulators_and_proof(self, srs, snarks, rng=None):
        """자식 누산기를 모두 구한 뒤 접는다. (접힌 누산기, as_proof) 를 돌려준다."""
        accumulators = self.extract_accumulators(snarks)
        folded, as_proof = fold(accumulators, srs, self.config, rng)
        logger.info("folded accumulator produced from %d snarks", len(snarks))
        return folded, as_proof
