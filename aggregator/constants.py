"""
집계기 고정 상수
=================

배치 용량, 비원시 좌표 분해 폭, 해시 전상(preimage)의 바이트 오프셋을 정의한다.

청크 전상 레이아웃 (136바이트):

    chain_id (8, BE) ‖ prev_state_root (32) ‖ post_state_root (32)
                     ‖ withdraw_root (32)   ‖ data_hash (32)

배치 공개 입력 해시의 전상도 같은 레이아웃을 따르므로
두 전상 사이의 필드 비교는 같은 오프셋을 사용한다.
"""

# 배치 하나가 담을 수 있는 최대 청크 수
MAX_CHUNKS = 10

# 비원시 FQ 좌표 하나를 나누는 림 수와 림 비트 폭
LIMBS = 3
BITS = 88

# 누산기(lhs.x, lhs.y, rhs.x, rhs.y)를 담는 인스턴스 원소 수
ACC_LEN = 4 * LIMBS

DIGEST_LEN = 32
CHAIN_ID_LEN = 8

# 청크 / 배치 전상 안의 필드 시작 위치
PREV_STATE_ROOT_INDEX = CHAIN_ID_LEN
POST_STATE_ROOT_INDEX = PREV_STATE_ROOT_INDEX + DIGEST_LEN
WITHDRAW_ROOT_INDEX = POST_STATE_ROOT_INDEX + DIGEST_LEN
DATA_HASH_INDEX = WITHDRAW_ROOT_INDEX + DIGEST_LEN

CHUNK_PREIMAGE_LEN = DATA_HASH_INDEX + DIGEST_LEN  # 136

# Keccak-f 순열 라운드 수와 기본 행(row) 배수
NUM_ROUNDS = 24
DEFAULT_KECCAK_ROWS = 12

# Keccak-256 흡수 블록 폭 (bytes)
KECCAK_RATE = 136
