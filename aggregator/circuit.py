"""
제약 기록기 (Constraint Recorder)
==================================

집계 회로의 제약을 PLONK 형태의 게이트, 복사(copy) 제약, 인스턴스 제약,
룩업(lookup) 기록으로 남긴다. 증명 생성 자체는 외부 백엔드의 몫이고,
이 모듈은 백엔드가 소비할 제약 목록과 그 만족 여부 검사(verify)만 제공한다.

**게이트**:
    q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C = 0

  | 연산          | q_L | q_R | q_O | q_M | q_C | 의미          |
  |---------------|-----|-----|-----|-----|-----|---------------|
  | add           |  1  |  1  | -1  |  0  |  0  | a + b = c     |
  | sub           |  1  | -1  | -1  |  0  |  0  | a - b = c     |
  | mul           |  0  |  0  | -1  |  1  |  0  | a · b = c     |
  | scale(k)      |  k  |  0  | -1  |  0  |  0  | k · a = c     |
  | add_constant  |  1  |  0  | -1  |  0  |  k  | a + k = c     |
  | not_          | -1  |  0  | -1  |  0  |  1  | 1 - a = c     |
  | assert_boolean| -1  |  0  |  0  |  1  |  0  | a² - a = 0    |
  | enforce_zero  |  1  |  0  |  0  |  0  |  0  | a = 0         |

각 제약에는 선택적으로 태그(규칙 번호)가 붙는다. verify()는 실패한
제약을 태그와 함께 돌려주므로, 어느 연결 규칙이 깨졌는지 알 수 있다.

사용 예시:
    >>> c = Circuit()
    >>> x = c.assign(3)
    >>> y = c.mul(x, x)
    >>> c.constrain_instance(y, 0)
    >>> c.is_satisfied([FR(9)])  # True
"""

import hashlib
from collections import namedtuple
from contextlib import contextmanager

from aggregator.field import FR


class Gate:
    """PLONK 산술 게이트: q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C = 0."""

    def __init__(self, q_l, q_r, q_o, q_m, q_c):
        self.q_l = q_l if isinstance(q_l, FR) else FR(q_l)
        self.q_r = q_r if isinstance(q_r, FR) else FR(q_r)
        self.q_o = q_o if isinstance(q_o, FR) else FR(q_o)
        self.q_m = q_m if isinstance(q_m, FR) else FR(q_m)
        self.q_c = q_c if isinstance(q_c, FR) else FR(q_c)

    def check(self, a, b, c):
        """게이트 제약이 만족되는지 확인한다."""
        if not isinstance(a, FR):
            a = FR(a)
        if not isinstance(b, FR):
            b = FR(b)
        if not isinstance(c, FR):
            c = FR(c)
        result = (
            self.q_l * a
            + self.q_r * b
            + self.q_o * c
            + self.q_m * (a * b)
            + self.q_c
        )
        return result == FR(0)


class Cell:
    """회로에 할당된 값 하나의 위치. 값 자체는 Circuit.values[index]에 있다."""

    __slots__ = ("index", "column", "row")

    def __init__(self, index, column, row):
        self.index = index
        self.column = column
        self.row = row

    def __repr__(self):
        return f"Cell({self.column}[{self.row}])"


# verify()가 돌려주는 실패 항목. kind: "gate" | "copy" | "instance" | "lookup"
Failure = namedtuple("Failure", ["kind", "index", "tag", "detail"])


class Circuit:
    """게이트와 배선 정보를 모으는 제약 기록기.

    속성:
        values: 셀 인덱스 → FR 값 (witness)
        gates: (Gate, (a, b, c) 셀 인덱스, tag) 리스트
        copy_constraints: (셀 인덱스, 셀 인덱스, tag) 리스트
        instance_constraints: (셀 인덱스, 인스턴스 위치, tag) 리스트
        lookups: check(circuit) 메서드를 가진 룩업 기록 리스트
    """

    def __init__(self):
        self.values = []
        self.cells = []
        self.gates = []
        self.copy_constraints = []
        self.instance_constraints = []
        self.lookups = []
        self._rows = {}
        self._tag = None

    @property
    def n(self):
        """게이트 수."""
        return len(self.gates)

    def assign(self, value, column="advice", row=None):
        """값을 새 셀에 할당한다. row를 주지 않으면 열마다 순서대로 증가한다."""
        if not isinstance(value, FR):
            value = FR(value)
        if row is None:
            row = self._rows.get(column, 0)
        self._rows[column] = max(self._rows.get(column, 0), row + 1)
        cell = Cell(len(self.values), column, row)
        self.values.append(value)
        self.cells.append(cell)
        return cell

    def value(self, cell):
        return self.values[cell.index]

    @contextmanager
    def tagged(self, tag):
        """블록 안에서 추가되는 제약에 기본 태그를 붙인다."""
        previous = self._tag
        self._tag = tag
        try:
            yield self
        finally:
            self._tag = previous

    def _gate(self, selectors, a, b, c, tag=None):
        if tag is None:
            tag = self._tag
        self.gates.append((Gate(*selectors), (a.index, b.index, c.index), tag))

    # ─────────────────────────────────────────────────────────────────
    # 산술 헬퍼
    # ─────────────────────────────────────────────────────────────────

    def constant(self, value, tag=None):
        """상수 셀: a - k = 0."""
        if not isinstance(value, FR):
            value = FR(value)
        cell = self.assign(value)
        self._gate((1, 0, 0, 0, FR(0) - value), cell, cell, cell, tag)
        return cell

    def add(self, a, b):
        c = self.assign(self.value(a) + self.value(b))
        self._gate((1, 1, -1, 0, 0), a, b, c)
        return c

    def sub(self, a, b):
        c = self.assign(self.value(a) - self.value(b))
        self._gate((1, -1, -1, 0, 0), a, b, c)
        return c

    def mul(self, a, b):
        c = self.assign(self.value(a) * self.value(b))
        self._gate((0, 0, -1, 1, 0), a, b, c)
        return c

    def scale(self, a, k):
        if not isinstance(k, FR):
            k = FR(k)
        c = self.assign(self.value(a) * k)
        self._gate((k, 0, -1, 0, 0), a, a, c)
        return c

    def add_constant(self, a, k):
        if not isinstance(k, FR):
            k = FR(k)
        c = self.assign(self.value(a) + k)
        self._gate((1, 0, -1, 0, k), a, a, c)
        return c

    def not_(self, a):
        c = self.assign(FR(1) - self.value(a))
        self._gate((-1, 0, -1, 0, 1), a, a, c)
        return c

    def select(self, a, b, flag):
        """flag ? a : b  =  flag·(a - b) + b. flag는 불리언이어야 한다."""
        diff = self.sub(a, b)
        return self.add(self.mul(diff, flag), b)

    def sum(self, cells):
        cells = list(cells)
        if not cells:
            return self.constant(0)
        acc = cells[0]
        for cell in cells[1:]:
            acc = self.add(acc, cell)
        return acc

    def assert_boolean(self, a, tag=None):
        self._gate((-1, 0, 0, 1, 0), a, a, a, tag)

    def enforce_zero(self, a, tag=None):
        self._gate((1, 0, 0, 0, 0), a, a, a, tag)

    def conditional_equal(self, a, b, flag, tag=None):
        """flag가 1이면 a == b. (a - b)·flag = 0 으로 표현한다."""
        self.enforce_zero(self.mul(self.sub(a, b), flag), tag)

    def rlc_with_flags(self, inputs, flags, r):
        """flag가 켜진 입력만 누적하는 RLC.

        acc₀ = inputs[0]
        accᵢ = flagᵢ ? accᵢ₋₁·r + inputsᵢ : accᵢ₋₁

        flags[0]은 사용하지 않는다 (첫 원소는 항상 포함).
        """
        if len(inputs) != len(flags):
            raise ValueError("inputs와 flags의 길이가 다릅니다")
        acc = inputs[0]
        for x, flag in zip(inputs[1:], flags[1:]):
            step = self.add(self.mul(acc, r), x)
            acc = self.select(step, acc, flag)
        return acc

    # ─────────────────────────────────────────────────────────────────
    # 배선 / 인스턴스 / 룩업
    # ─────────────────────────────────────────────────────────────────

    def constrain_equal(self, a, b, tag=None):
        """복사 제약: 두 셀의 값이 같아야 한다."""
        if tag is None:
            tag = self._tag
        self.copy_constraints.append((a.index, b.index, tag))

    def constrain_instance(self, cell, instance_index, tag=None):
        if tag is None:
            tag = self._tag
        self.instance_constraints.append((cell.index, instance_index, tag))

    def add_lookup(self, lookup):
        self.lookups.append(lookup)

    # ─────────────────────────────────────────────────────────────────
    # 검사
    # ─────────────────────────────────────────────────────────────────

    def verify(self, instance=()):
        """모든 제약을 검사하고 실패 목록을 돌려준다 (빈 리스트면 만족)."""
        failures = []
        values = self.values

        for i, (gate, (a, b, c), tag) in enumerate(self.gates):
            if not gate.check(values[a], values[b], values[c]):
                failures.append(Failure("gate", i, tag, f"cells ({a}, {b}, {c})"))

        for i, (a, b, tag) in enumerate(self.copy_constraints):
            if values[a] != values[b]:
                failures.append(
                    Failure("copy", i, tag, f"{self.cells[a]} != {self.cells[b]}")
                )

        for i, (cell, position, tag) in enumerate(self.instance_constraints):
            if position >= len(instance):
                failures.append(Failure("instance", i, tag, f"instance[{position}] 없음"))
                continue
            expected = instance[position]
            if not isinstance(expected, FR):
                expected = FR(expected)
            if values[cell] != expected:
                failures.append(
                    Failure("instance", i, tag, f"{self.cells[cell]} != instance[{position}]")
                )

        for i, lookup in enumerate(self.lookups):
            reason = lookup.check(self)
            if reason:
                failures.append(Failure("lookup", i, getattr(lookup, "tag", None), reason))

        return failures

    def is_satisfied(self, instance=()):
        return not self.verify(instance)

    def digest(self):
        """제약 구조 (게이트, 배선, 인스턴스 위치, 룩업 수) 와 witness 전체의 SHA-256."""
        h = hashlib.sha256()

        def put(*ints):
            for v in ints:
                h.update(int(v).to_bytes(32, "big"))

        put(len(self.gates))
        for gate, wires, _ in self.gates:
            put(gate.q_l, gate.q_r, gate.q_o, gate.q_m, gate.q_c, *wires)
        put(len(self.copy_constraints))
        for a, b, _ in self.copy_constraints:
            put(a, b)
        put(len(self.instance_constraints))
        for cell, position, _ in self.instance_constraints:
            put(cell, position)
        put(len(self.lookups), len(self.values))
        put(*self.values)
        return h.digest()
