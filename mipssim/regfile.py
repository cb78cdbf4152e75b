"""Architectural register file."""

from __future__ import annotations

from dataclasses import dataclass

NUM_REGISTERS = 32
_MASK32 = 0xFFFFFFFF


@dataclass
class PhysReg:
    """One register: its 32-bit value and a ready flag."""

    value: int = 0
    ready: bool = True


def _check(reg: int) -> None:
    if not 0 <= reg < NUM_REGISTERS:
        raise IndexError(f"register index out of range: {reg}")


class Registers:
    """Thirty-two general-purpose registers plus the program counter."""

    def __init__(self) -> None:
        self._regs = [PhysReg() for _ in range(NUM_REGISTERS)]
        self.pc = 0

    def read(self, reg: int) -> int:
        """Return the unsigned 32-bit value of a register."""
        _check(reg)
        return self._regs[reg].value

    def write(self, reg: int, value: int) -> None:
        """Store a 32-bit value in a register and mark it ready."""
        _check(reg)
        self._regs[reg].value = value & _MASK32
        self._regs[reg].ready = True

    def is_ready(self, reg: int) -> bool:
        _check(reg)
        return self._regs[reg].ready

    def dump(self, reg: int | None = None) -> str:
        """Format one register, or all of them, as signed decimal lines."""
        indices = range(NUM_REGISTERS) if reg is None else [reg]
        lines = []
        for i in indices:
            _check(i)
            value = self._regs[i].value
            if value & 0x80000000:
                value -= 1 << 32
            lines.append(f"R[{i}]: {value}\n")
        return "".join(lines)