"""Load/store buffer and scheduling queue of the out-of-order core."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterator, NamedTuple

LOAD_STORE_BUFFER_SIZE = 20
SCHEDULING_QUEUE_SIZE = 50
_MASK32 = 0xFFFFFFFF


@dataclass
class LSBEntry:
    """A memory operation waiting for its address, its value or its turn."""

    valid_address: bool = False
    valid_value: bool = False
    tag_address: int = -1
    tag_value: int = -1
    value: int = 0
    address: int = 0
    byte: bool = False
    halfword: bool = False
    is_store: bool = False
    rob_id: int = -1
    execute: bool = False
    complete: bool = False
    pending: bool = False

    @property
    def width(self) -> int:
        """Number of bytes the operation touches."""
        if self.byte:
            return 1
        if self.halfword:
            return 2
        return 4

    def overlaps(self, other: "LSBEntry") -> bool:
        """True if the byte ranges of the two operations intersect."""
        start = self.address
        end = (start + self.width) & _MASK32
        other_start = other.address
        other_end = (other_start + other.width) & _MASK32
        return not (other_end <= start or other_start >= end)


class ExecutableLoad(NamedTuple):
    """A load that may be sent to memory."""

    address: int
    halfword: bool
    byte: bool
    index: int
    rob_id: int
    valid_value: bool
    value: int


class ExecutedStore(NamedTuple):
    """A store whose address and value are both known."""

    rob_id: int
    value: int
    address: int


def _merge_shift(target_start: int, store_start: int) -> int:
    # Offsets are unsigned 32-bit quantities and shift counts wrap at 32.
    return (((target_start - store_start) & _MASK32) * 8) & _MASK32 & 31


class LoadStoreBuffer:
    """Circular buffer of loads and stores kept in program order."""

    def __init__(self, capacity: int = LOAD_STORE_BUFFER_SIZE) -> None:
        self.capacity = capacity
        self._entries = [LSBEntry() for _ in range(capacity)]
        self._head = 0
        self._tail = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index: int) -> LSBEntry:
        """Return a copy of the entry in slot ``index``."""
        return replace(self._entries[index])

    def _live(self) -> Iterator[int]:
        """Slot indices of the live entries, oldest first."""
        for n in range(self._count):
            yield (self._head + n) % self.capacity

    def _older(self, index: int) -> Iterator[int]:
        """Slot indices from the head up to, but not including, ``index``."""
        j = self._head
        while j != index:
            yield j
            j = (j + 1) % self.capacity

    def has_space(self) -> bool:
        return self._count < self.capacity

    def put(
        self,
        valid_value: bool,
        tag_address: int,
        tag_value: int,
        value: int,
        byte: bool,
        halfword: bool,
        is_store: bool,
        rob_id: int,
    ) -> int:
        """Append a load or store whose address is still unknown; return its slot."""
        if not self.has_space():
            raise IndexError("load/store buffer is full")
        self._entries[self._tail] = LSBEntry(
            valid_value=valid_value,
            tag_address=tag_address,
            tag_value=tag_value,
            value=value & _MASK32,
            byte=byte,
            halfword=halfword,
            is_store=is_store,
            rob_id=rob_id,
        )
        index = self._tail
        self._tail = (self._tail + 1) % self.capacity
        self._count += 1
        return index

    def commit_by_rob_id(self, rob_id: int) -> None:
        """Mark every live entry belonging to reorder-buffer slot ``rob_id`` complete."""
        for i in self._live():
            if self._entries[i].rob_id == rob_id:
                self._entries[i].complete = True

    def resolve_pending_state(self, address: int, value: int) -> None:
        """Deliver a word returned by memory to loads waiting on ``address``."""
        for i in self._live():
            entry = self._entries[i]
            if entry.pending and entry.address == address:
                entry.value = value & _MASK32
                entry.pending = False
                entry.valid_value = True

    def update(self, tag: int, value: int) -> None:
        """Broadcast a produced value to every slot waiting on ``tag``."""
        for entry in self._entries:
            if entry.tag_address == tag and not entry.valid_address:
                entry.address = value & _MASK32
                entry.valid_address = True
            if entry.tag_value == tag and not entry.valid_value:
                entry.value = value & _MASK32
                entry.valid_value = True

    def executed_stores(self) -> list[ExecutedStore]:
        """Return the live stores that are ready, oldest first."""
        return [
            ExecutedStore(e.rob_id, e.value, e.address)
            for e in (self._entries[i] for i in self._live())
            if e.execute and e.is_store
        ]

    def update_execution_bits(self) -> None:
        """Mark stores with known operands, and loads free of store conflicts, executable."""
        for i in self._live():
            entry = self._entries[i]
            if entry.is_store and entry.valid_address and entry.valid_value:
                entry.execute = True
            if entry.is_store or not entry.valid_address or entry.execute:
                continue
            can_execute = True
            for j in self._older(i):
                older = self._entries[j]
                if not older.is_store:
                    continue
                if not older.valid_address or entry.overlaps(older):
                    can_execute = False
                    break
            if can_execute:
                entry.execute = True

    def executable_load(self) -> ExecutableLoad | None:
        """Return the oldest load that may go to memory, or None."""
        for i in self._live():
            e = self._entries[i]
            if not e.is_store and e.execute and not e.complete and not e.pending:
                return ExecutableLoad(
                    e.address, e.halfword, e.byte, i, e.rob_id, e.valid_value, e.value
                )
        return None

    def mark_pending(self, index: int) -> None:
        """Mark a load as waiting on memory; out-of-range indices are ignored."""
        if 0 <= index < self.capacity:
            self._entries[index].pending = True

    def resolve_store_value(self, lsb_index: int, memory_value: int) -> int:
        """Merge older overlapping stores into ``memory_value`` and complete the load."""
        target = self._entries[lsb_index]
        resolved = memory_value & _MASK32
        for j in self._older(lsb_index):
            store = self._entries[j]
            if not store.is_store or not target.overlaps(store):
                continue
            if store.byte or store.halfword:
                mask = 0xFF if store.byte else 0xFFFF
                shift = _merge_shift(target.address, store.address)
                resolved = (resolved & ~(mask << shift) & _MASK32) | (
                    ((store.value & mask) << shift) & _MASK32
                )
            else:
                resolved = store.value
        target.complete = True
        return resolved & _MASK32

    def advance_head_if_complete(self) -> None:
        """Drop completed entries from the head."""
        while self._count > 0 and self._entries[self._head].complete:
            self._head = (self._head + 1) % self.capacity
            self._count -= 1

    def flush(self) -> None:
        """Discard every entry."""
        self._head = 0
        self._tail = 0
        self._count = 0
        self._entries = [LSBEntry() for _ in range(self.capacity)]


@dataclass(frozen=True)
class InstructionDetails:
    """Decoded information an issued instruction needs to execute."""

    alu_op: int = 0
    memory: bool = False
    jump_reg: bool = False
    link: bool = False
    branch: bool = False
    bne: bool = False
    opcode: int = 0
    funct: int = 0
    shamt: int = 0


@dataclass
class _SQEntry:
    allocated: bool = False
    valid1: bool = False
    tag1: int = -1
    value1: int = 0
    valid2: bool = False
    tag2: int = -1
    value2: int = 0
    rob_id: int = 0
    inst: InstructionDetails = field(default_factory=InstructionDetails)


class IssuedInstruction(NamedTuple):
    """An instruction leaving the scheduling queue with both operands ready."""

    value1: int
    value2: int
    rob_id: int
    inst: InstructionDetails
    index: int


class SchedulingQueue:
    """Reservation stations: instructions wait here until their operands arrive."""

    def __init__(self, capacity: int = SCHEDULING_QUEUE_SIZE) -> None:
        self.capacity = capacity
        self._entries = [_SQEntry() for _ in range(capacity)]

    def __len__(self) -> int:
        return sum(1 for e in self._entries if e.allocated)

    def has_unallocated_entry(self) -> bool:
        return any(not e.allocated for e in self._entries)

    def allocate_entry(
        self,
        tag1: int,
        value1: int,
        valid1: bool,
        tag2: int,
        value2: int,
        valid2: bool,
        inst: InstructionDetails,
        rob_id: int,
    ) -> int:
        """Place an instruction in the first free slot and return that slot."""
        for i, entry in enumerate(self._entries):
            if not entry.allocated:
                self._entries[i] = _SQEntry(
                    allocated=True,
                    valid1=valid1,
                    tag1=tag1,
                    value1=value1 & _MASK32,
                    valid2=valid2,
                    tag2=tag2,
                    value2=value2 & _MASK32,
                    rob_id=rob_id,
                    inst=inst,
                )
                return i
        raise IndexError("scheduling queue is full")

    def deallocate_entry(self) -> IssuedInstruction | None:
        """Remove and return the first instruction whose operands are ready."""
        for i, entry in enumerate(self._entries):
            if entry.allocated and entry.valid1 and entry.valid2:
                issued = IssuedInstruction(
                    entry.value1, entry.value2, entry.rob_id, entry.inst, i
                )
                # Operand values are left behind, as in a hardware slot.
                self._entries[i] = _SQEntry(value1=entry.value1, value2=entry.value2)
                return issued
        return None

    def update(self, tag: int, value: int) -> None:
        """Broadcast a produced value to allocated slots waiting on ``tag``."""
        for entry in self._entries:
            if not entry.allocated:
                continue
            if entry.tag1 == tag and not entry.valid1:
                entry.value1 = value & _MASK32
                entry.valid1 = True
            if entry.tag2 == tag and not entry.valid2:
                entry.value2 = value & _MASK32
                entry.valid2 = True

    def flush(self) -> None:
        """Free every slot."""
        self._entries = [_SQEntry() for _ in range(self.capacity)]