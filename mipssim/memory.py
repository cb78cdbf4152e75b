"""Main memory with a two-level cache hierarchy and miss-status holding registers."""

from __future__ import annotations

from array import array
from dataclasses import dataclass, field, replace
from typing import NamedTuple

CACHE_LINE_SIZE = 64
WORDS_PER_LINE = CACHE_LINE_SIZE // 4
MEMORY_WORDS = 2097152
_MASK32 = 0xFFFFFFFF


@dataclass
class MSHREntry:
    """An outstanding memory request and the miss penalties still to pay."""

    address: int
    is_write: bool = False
    write_value: int = 0
    l1_penalty: int = 0
    l2_penalty: int = 0
    success: bool = False


class MSHR:
    """Miss-status holding registers: the queue of outstanding requests."""

    def __init__(self) -> None:
        self.entries: list[MSHREntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def insert(
        self,
        address: int,
        is_write: bool,
        value: int,
        l1_penalty: int = 0,
        l2_penalty: int = 0,
    ) -> MSHREntry:
        """Queue a new request and return it."""
        entry = MSHREntry(address, is_write, value & _MASK32, l1_penalty, l2_penalty)
        self.entries.append(entry)
        return entry

    def contains(self, address: int) -> bool:
        return any(entry.address == address for entry in self.entries)

    def flush(self) -> None:
        self.entries.clear()

    def describe(self) -> str:
        """Return one line per outstanding request."""
        return "".join(
            f"Address: {e.address:x}, Is Write: {int(e.is_write)}, "
            f"Write Value: {e.write_value}, L1 Penalty: {e.l1_penalty}, "
            f"L2 Penalty: {e.l2_penalty}, Success: {int(e.success)}\n"
            for e in self.entries
        )


@dataclass
class CacheLine:
    """One cache line: sixteen words plus bookkeeping."""

    data: list[int] = field(default_factory=lambda: [0] * WORDS_PER_LINE)
    address: int = 0
    tag: int = 0
    valid: bool = False
    dirty: bool = False
    repl_bits: int = 0

    def copy(self) -> "CacheLine":
        return replace(self, data=list(self.data))


class Cache:
    """A set-associative, write-back cache with LRU replacement."""

    def __init__(self, name: str, size: int, assoc: int, miss_penalty: int) -> None:
        self.name = name
        self.size = size
        self.assoc = assoc
        self.miss_penalty = miss_penalty
        self._lines = [CacheLine() for _ in range(size // CACHE_LINE_SIZE)]
        self._sets = size // CACHE_LINE_SIZE // assoc
        self._index_bits = self._sets.bit_length() - 1
        self._offset_bits = CACHE_LINE_SIZE.bit_length() - 1
        self._penalty_field = "l1_penalty" if name == "L1" else "l2_penalty"

    def offset(self, address: int) -> int:
        return address & (CACHE_LINE_SIZE - 1)

    def index(self, address: int) -> int:
        return (address >> self._offset_bits) & (self._sets - 1)

    def tag(self, address: int) -> int:
        return (address & _MASK32) >> (self._index_bits + self._offset_bits)

    def _matching(self, address: int) -> list[int]:
        idx = self.index(address)
        tag = self.tag(address)
        base = idx * self.assoc
        return [
            base + way
            for way in range(self.assoc)
            if self._lines[base + way].valid and self._lines[base + way].tag == tag
        ]

    def is_hit(self, address: int) -> int | None:
        """Return the line position holding ``address`` (updating LRU), or None."""
        idx = self.index(address)
        tag = self.tag(address)
        for way in range(self.assoc):
            pos = idx * self.assoc + way
            line = self._lines[pos]
            if line.valid and line.tag == tag:
                self.update_replacement_bits(idx, way)
                return pos
        return None

    def update_replacement_bits(self, idx: int, way: int) -> None:
        """Make ``way`` the most recently used line of set ``idx``."""
        base = idx * self.assoc
        current = self._lines[base + way].repl_bits
        for w in range(self.assoc):
            line = self._lines[base + w]
            if line.valid and line.repl_bits > current:
                line.repl_bits -= 1
        self._lines[base + way].repl_bits = self.assoc - 1

    def _pay_penalty(self, address: int, entry: MSHREntry) -> int | None:
        countdown = getattr(entry, self._penalty_field)
        if countdown:
            setattr(entry, self._penalty_field, countdown - 1)
            return None
        pos = self.is_hit(address)
        if pos is None:
            setattr(entry, self._penalty_field, self.miss_penalty - 1)
        return pos

    def read(self, address: int, entry: MSHREntry) -> bool:
        """Try to serve a read; on a hit store the word in ``entry.write_value``."""
        pos = self._pay_penalty(address, entry)
        if pos is None:
            return False
        entry.write_value = self._lines[pos].data[self.offset(address) // 4]
        entry.success = True
        return True

    def write(self, address: int, write_data: int, entry: MSHREntry) -> bool:
        """Try to perform a write; return True once it hits."""
        pos = self._pay_penalty(address, entry)
        if pos is None:
            return False
        line = self._lines[pos]
        line.data[self.offset(address) // 4] = write_data & _MASK32
        line.dirty = True
        entry.success = True
        return True

    def read_line(self, address: int) -> CacheLine:
        """Return a copy of the line holding ``address``, or an invalid line."""
        for pos in self._matching(address):
            return self._lines[pos].copy()
        return CacheLine()

    def write_back_line(self, evicted_line: CacheLine) -> None:
        """Copy an evicted line's data into the matching line and mark it dirty."""
        for pos in self._matching(evicted_line.address):
            line = self._lines[pos]
            line.data = list(evicted_line.data)
            line.dirty = True

    def replace(self, address: int, new_line: CacheLine) -> CacheLine | None:
        """Install ``new_line`` for ``address``; return the line it displaced."""
        idx = self.index(address)
        tag = self.tag(address)
        incoming = replace(
            new_line,
            data=list(new_line.data),
            address=address,
            tag=tag,
            valid=True,
            repl_bits=self.assoc - 1,
        )
        base = idx * self.assoc
        for way in range(self.assoc):
            line = self._lines[base + way]
            if line.valid and line.tag == tag:
                self.update_replacement_bits(idx, way)
                return None
        for way in range(self.assoc):
            line = self._lines[base + way]
            if not line.valid or line.repl_bits == 0:
                self._lines[base + way] = incoming
                return line
            line.repl_bits -= 1
        return None

    def invalidate_line(self, address: int) -> None:
        for pos in self._matching(address):
            self._lines[pos].valid = False

    def describe_line(self, address: int) -> str:
        """Format the line holding ``address``; empty if it is not cached."""
        for pos in self._matching(address):
            line = self._lines[pos]
            rows = [
                f"Valid:{int(line.valid)}\n",
                f"Address:{line.address}\n",
                f"Tag:{line.tag}\n",
                f"Dirty:{int(line.dirty)}\n",
                f"Replacement Bits:{line.repl_bits}\n",
            ]
            rows.extend(f"DATA[{i}]: {word}\n" for i, word in enumerate(line.data))
            return "".join(rows)
        return ""


class AccessResult(NamedTuple):
    """Outcome of a memory access: whether it completed, and the word read."""

    hit: bool
    data: int | None = None


class Memory:
    """Word-addressed main memory behind an L1/L2 cache hierarchy."""

    def __init__(self) -> None:
        self._words = array("I", [0]) * MEMORY_WORDS
        self.l1 = Cache("L1", 32768, 8, 12)
        self.l2 = Cache("L2", 262144, 8, 59)
        self.opt_level = 0
        self.mshr = MSHR()

    def set_opt_level(self, level: int) -> None:
        self.opt_level = level

    @staticmethod
    def _word_index(address: int) -> int:
        index = (address & _MASK32) // 4
        if index >= MEMORY_WORDS:
            raise IndexError(f"address out of range: {address:#x}")
        return index

    def access(
        self, address: int, write_data: int, mem_read: bool, mem_write: bool
    ) -> AccessResult:
        """Read and/or write one word.

        At optimisation level 0 the access completes at once. Above it,
        requests go through the MSHR and report a miss until served.
        """
        if self.opt_level == 0:
            data = None
            if mem_read:
                data = self._words[self._word_index(address)]
            if mem_write:
                self._words[self._word_index(address)] = write_data & _MASK32
            return AccessResult(True, data)

        if not mem_read and not mem_write:
            return AccessResult(True)

        if mem_write:
            self.mshr.insert(address, True, write_data)
            return AccessResult(False)

        for entry in self.mshr.entries:
            if entry.address == address:
                if entry.is_write:
                    return AccessResult(True, entry.write_value)
                return AccessResult(False)

        self.mshr.insert(address, False, 0)
        return AccessResult(False)

    @staticmethod
    def _cache_access(cache: Cache, entry: MSHREntry) -> bool:
        if entry.is_write:
            return cache.write(entry.address, entry.write_value, entry)
        return cache.read(entry.address, entry)

    def tick(self) -> None:
        """Advance every outstanding request by one cycle."""
        for entry in self.mshr.entries:
            if self._cache_access(self.l1, entry):
                continue
            if self._cache_access(self.l2, entry):
                evicted = self.l1.replace(entry.address, self.l2.read_line(entry.address))
                if evicted is not None and evicted.valid and evicted.dirty:
                    self.l2.write_back_line(evicted)
                continue

            base = self._word_index(entry.address & ~(CACHE_LINE_SIZE - 1))
            fresh = CacheLine(data=list(self._words[base : base + WORDS_PER_LINE]))
            evicted = self.l2.replace(entry.address, fresh)
            if evicted is not None and evicted.valid:
                self.l1.invalidate_line(evicted.address)
                if evicted.dirty:
                    start = self._word_index(evicted.address & ~(CACHE_LINE_SIZE - 1))
                    self._words[start : start + WORDS_PER_LINE] = array("I", evicted.data)

    def dump(self, address: int, num_words: int) -> str:
        """Format ``num_words`` words starting at word index ``address`` in hex."""
        return "".join(
            f"MEM[{i:x}]: {self._words[i]:x}\n" for i in range(address, address + num_words)
        )