"""Arithmetic logic unit of the simulated MIPS core."""

from __future__ import annotations

from enum import IntEnum

MASK32 = 0xFFFFFFFF


class AluOp(IntEnum):
    """Operation selected by the ALU control inputs."""

    AND = 0
    OR = 1
    ADD = 2
    SLL = 3
    SRL = 4
    LUI = 5
    SUB = 6
    SLT = 7
    NOR = 12


_RTYPE_OPS = {
    0x00: AluOp.SLL,
    0x02: AluOp.SRL,
    0x08: AluOp.ADD,
    0x20: AluOp.ADD,
    0x21: AluOp.ADD,
    0x22: AluOp.SUB,
    0x23: AluOp.SUB,
    0x24: AluOp.AND,
    0x25: AluOp.OR,
    0x27: AluOp.NOR,
    0x2A: AluOp.SLT,
    0x2B: AluOp.SLT,
}

_ITYPE_OPS = {
    0x8: AluOp.ADD,
    0x9: AluOp.ADD,
    0xA: AluOp.SLT,
    0xB: AluOp.SLT,
    0xC: AluOp.AND,
    0xD: AluOp.OR,
    0xF: AluOp.LUI,
}


def _signed(value: int) -> int:
    value &= MASK32
    return value - (1 << 32) if value & 0x80000000 else value


class ALU:
    """A 32-bit ALU driven by control inputs derived from the instruction."""

    def __init__(self) -> None:
        self.control_inputs: AluOp = AluOp.ADD

    def generate_control_inputs(self, alu_op: int, funct: int, opcode: int) -> AluOp:
        """Select the ALU operation from ALU_op, funct and opcode."""
        if alu_op == 0:
            op = AluOp.ADD
        elif alu_op == 1:
            op = AluOp.SUB
        elif alu_op == 2:
            op = _RTYPE_OPS.get(funct, AluOp.ADD)
        else:
            op = _ITYPE_OPS.get(opcode, AluOp.ADD)
        self.control_inputs = op
        return op

    def execute(self, operand_1: int, operand_2: int) -> tuple[int, bool]:
        """Run the selected operation; return the result and the zero flag."""
        a = operand_1 & MASK32
        b = operand_2 & MASK32
        op = self.control_inputs
        if op is AluOp.AND:
            result = a & b
        elif op is AluOp.OR:
            result = a | b
        elif op is AluOp.SLL:
            result = b << (a & 31)
        elif op is AluOp.SRL:
            result = b >> (a & 31)
        elif op is AluOp.LUI:
            result = b << 16
        elif op is AluOp.SUB:
            result = a - b
        elif op is AluOp.SLT:
            result = 1 if _signed(a) < _signed(b) else 0
        elif op is AluOp.NOR:
            result = ~(a | b)
        else:
            result = a + b
        result &= MASK32
        return result, result == 0