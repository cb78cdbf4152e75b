"""Front-end structures of the out-of-order core: fetch queue, renaming, prediction."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from typing import Iterator

from mipssim.regfile import NUM_REGISTERS, Registers

INSTRUCTION_QUEUE_SIZE = 30
_MASK32 = 0xFFFFFFFF


@dataclass
class QueuedInstruction:
    """A fetched instruction waiting to be decoded."""

    instruction: int
    pc: int
    pending: bool = False
    predicted_next_pc: int = 0
    taken: bool = False


class InstructionQueue:
    """Bounded FIFO of fetched instructions.

    Like a ring buffer that keeps one slot free, it holds at most
    ``capacity - 1`` instructions.
    """

    def __init__(self, capacity: int = INSTRUCTION_QUEUE_SIZE) -> None:
        self.capacity = capacity
        self._entries: deque[QueuedInstruction] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[QueuedInstruction]:
        return iter(self._entries)

    def put(
        self,
        instruction: int,
        pc: int,
        pending: bool = False,
        predicted_next_pc: int = 0,
        taken: bool = False,
    ) -> bool:
        """Append an instruction; return False if the queue is full."""
        if self.is_full():
            return False
        self._entries.append(
            QueuedInstruction(instruction, pc, pending, predicted_next_pc, taken)
        )
        return True

    def resolve_pending_address(self, address: int, value: int) -> None:
        """Fill in pending entries fetched from ``address``."""
        for entry in self._entries:
            if entry.pending and entry.pc == address:
                entry.instruction = value
                entry.pending = False

    def is_full(self) -> bool:
        return len(self._entries) >= self.capacity - 1

    def is_empty(self) -> bool:
        """True when nothing can be taken: empty, or the oldest is still pending."""
        return not self._entries or self._entries[0].pending

    def get(self) -> QueuedInstruction | None:
        """Remove and return the oldest instruction, or None if none is ready."""
        if self.is_empty():
            return None
        return self._entries.popleft()

    def flush(self) -> None:
        self._entries.clear()


@dataclass
class RenamedRegister:
    """A register's speculative state: value when valid, producer tag otherwise."""

    valid: bool = True
    tag: int = 0
    value: int = 0


class PredictiveRegisterFile:
    """Register alias table that tracks which producer will write each register."""

    def __init__(self) -> None:
        self._regs = [RenamedRegister() for _ in range(NUM_REGISTERS)]

    def read(self, index: int) -> RenamedRegister:
        """Return a copy of a register's state."""
        return replace(self._regs[index])

    def write(self, index: int, valid: bool, tag: int, value: int) -> None:
        reg = self._regs[index]
        reg.valid = valid
        reg.tag = tag
        reg.value = value & _MASK32

    def is_valid(self, index: int) -> bool:
        return self._regs[index].valid

    def update(self, tag: int, value: int) -> None:
        """Deliver a result to the first register waiting on ``tag``."""
        for reg in self._regs:
            if not reg.valid and reg.tag == tag:
                reg.value = value & _MASK32
                reg.valid = True
                return

    def update_tag(self, index: int, tag: int) -> None:
        """Mark a register as waiting on the producer ``tag``."""
        reg = self._regs[index]
        reg.tag = tag
        reg.valid = False

    def sync_with(self, registers: Registers) -> None:
        """Reload every value from the architectural registers and mark it valid."""
        for i, reg in enumerate(self._regs):
            reg.value = registers.read(i)
            reg.valid = True


@dataclass
class BTBEntry:
    tag: int = 0
    target: int = 0
    valid: bool = False


class BranchPredictor:
    """Two-bit saturating counters with a direct-mapped branch target buffer."""

    BHT_ENTRIES = 1024
    BTB_ENTRIES = 1024

    def __init__(self) -> None:
        self._bht = [1] * self.BHT_ENTRIES
        self._btb = [BTBEntry() for _ in range(self.BTB_ENTRIES)]

    def _bht_index(self, pc: int) -> int:
        return (pc >> 2) & (self.BHT_ENTRIES - 1)

    def _btb_index(self, pc: int) -> int:
        return (pc >> 2) % self.BTB_ENTRIES

    @staticmethod
    def _pc_tag(pc: int) -> int:
        return (pc >> 2) & _MASK32

    def predict(self, pc: int) -> tuple[bool, int]:
        """Return (predicted taken, predicted target) for ``pc``."""
        entry = self._btb[self._btb_index(pc)]
        if entry.valid and entry.tag == self._pc_tag(pc):
            target = entry.target
        else:
            target = (pc + 4) & _MASK32
        return self._bht[self._bht_index(pc)] >= 2, target

    def update(self, pc: int, actual_taken: bool, actual_target: int) -> None:
        """Train the predictor with a resolved outcome."""
        i = self._bht_index(pc)
        if actual_taken:
            self._bht[i] = min(self._bht[i] + 1, 3)
            entry = self._btb[self._btb_index(pc)]
            entry.tag = self._pc_tag(pc)
            entry.target = actual_target & _MASK32
            entry.valid = True
        else:
            self._bht[i] = max(self._bht[i] - 1, 0)

    def valid_targets(self) -> list[tuple[int, BTBEntry]]:
        """Return (index, entry) for every valid BTB entry."""
        return [(i, replace(e)) for i, e in enumerate(self._btb) if e.valid]