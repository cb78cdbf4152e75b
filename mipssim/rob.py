"""Reorder buffer that retires instructions in program order."""

from __future__ import annotations

from dataclasses import dataclass, replace

REORDER_BUFFER_SIZE = 50
_MASK32 = 0xFFFFFFFF


@dataclass
class ROBEntry:
    """One in-flight instruction awaiting commit."""

    execute: bool = False
    dest_reg: int = 0
    address: int = 0
    value: int = 0
    pc: int = 0
    mem_write: bool = False
    reg_write: bool = False
    halfword: bool = False
    byte: bool = False
    jump: bool = False
    flush: bool = False
    pending: bool = False


class ReorderBuffer:
    """Circular buffer of in-flight instructions; slots are addressed by index."""

    def __init__(self, capacity: int = REORDER_BUFFER_SIZE) -> None:
        self.capacity = capacity
        self._entries = [ROBEntry() for _ in range(capacity)]
        self._head = 0
        self._tail = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index: int) -> ROBEntry:
        """Return a copy of the entry stored in slot ``index``."""
        return replace(self._entries[index])

    def has_space(self) -> bool:
        return self._count < self.capacity

    def commit(self) -> int:
        """Retire the oldest entry and return its slot index."""
        if self._count == 0:
            raise IndexError("commit from an empty reorder buffer")
        index = self._head
        self._head = (self._head + 1) % self.capacity
        self._count -= 1
        return index

    def put(
        self,
        dest_reg: int,
        halfword: bool,
        byte: bool,
        pc: int,
        mem_write: bool,
        reg_write: bool,
        jump: bool,
        execute: bool,
        value: int,
        address: int,
    ) -> int:
        """Append a new entry and return the slot index it occupies."""
        if not self.has_space():
            raise IndexError("reorder buffer is full")
        self._entries[self._tail] = ROBEntry(
            execute=execute,
            dest_reg=dest_reg,
            address=address & _MASK32,
            value=value & _MASK32,
            pc=pc & _MASK32,
            mem_write=mem_write,
            reg_write=reg_write,
            halfword=halfword,
            byte=byte,
            jump=jump,
        )
        index = self._tail
        self._tail = (self._tail + 1) % self.capacity
        self._count += 1
        return index

    def update(
        self,
        index: int,
        value: int,
        jump: bool,
        address: int,
        flush: bool,
        update_address: bool,
    ) -> None:
        """Record an execution result for slot ``index`` and mark it executed."""
        entry = self._entries[index]
        entry.value = value & _MASK32
        entry.execute = True
        entry.jump = jump
        if update_address:
            entry.address = address & _MASK32
        entry.flush = flush

    def mark_pending(self, index: int) -> None:
        """Mark an entry as waiting on memory; out-of-range indices are ignored."""
        if 0 <= index < self.capacity:
            self._entries[index].pending = True

    def front(self) -> tuple[int, ROBEntry] | None:
        """Return (index, copy) of the oldest entry if it is ready to commit."""
        if self._count == 0:
            return None
        entry = self._entries[self._head]
        if entry.execute and not entry.pending:
            return self._head, replace(entry)
        return None

    def flush(self) -> None:
        """Discard every entry."""
        self._head = 0
        self._tail = 0
        self._count = 0
        self._entries = [ROBEntry() for _ in range(self.capacity)]