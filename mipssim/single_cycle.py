"""Single-cycle execution of MIPS instructions."""

from __future__ import annotations

import sys
from typing import TextIO

from mipssim.alu import ALU
from mipssim.control import ControlSignals, decode_fields, extend_immediate
from mipssim.memory import Memory
from mipssim.regfile import Registers

_MASK32 = 0xFFFFFFFF


class SingleCycleCore:
    """Executes one whole instruction on every call to :meth:`advance`."""

    def __init__(
        self,
        memory: Memory,
        registers: Registers,
        alu: ALU | None = None,
        control: ControlSignals | None = None,
        out: TextIO | None = None,
    ) -> None:
        self.memory = memory
        self.registers = registers
        self.alu = alu if alu is not None else ALU()
        self.control = control if control is not None else ControlSignals()
        self.out = out

    def _read(self, address: int, write_data: int, mem_read: bool, mem_write: bool, old: int) -> int:
        data = self.memory.access(address, write_data, mem_read, mem_write).data
        return old if data is None else data

    def advance(self) -> None:
        """Fetch, decode, execute, access memory and write back one instruction."""
        regs = self.registers
        control = self.control

        instruction = self._read(regs.pc, 0, True, False, 0)
        out = self.out if self.out is not None else sys.stdout
        out.write(f"PC: 0x{regs.pc:x}\n")
        regs.pc = (regs.pc + 4) & _MASK32

        control.decode(instruction)
        f = decode_fields(instruction)
        read_data_1 = regs.read(f.rs)
        read_data_2 = regs.read(f.rt)

        self.alu.generate_control_inputs(control.alu_op, f.funct, f.opcode)
        imm = extend_immediate(f.imm, control.zero_extend)
        operand_1 = f.shamt if control.shift else read_data_1
        operand_2 = imm if control.alu_src else read_data_2
        alu_result, alu_zero = self.alu.execute(operand_1, operand_2)

        read_data_mem = self._read(
            alu_result, 0, control.mem_read or control.mem_write, False, 0
        )
        if control.halfword:
            write_data_mem = (read_data_mem & 0xFFFF0000) | (read_data_2 & 0xFFFF)
        elif control.byte:
            write_data_mem = (read_data_mem & 0xFFFFFF00) | (read_data_2 & 0xFF)
        else:
            write_data_mem = read_data_2
        read_data_mem = self._read(
            alu_result, write_data_mem, control.mem_read, control.mem_write, read_data_mem
        )
        if control.halfword:
            read_data_mem &= 0xFFFF
        elif control.byte:
            read_data_mem &= 0xFF

        if control.link:
            write_reg, write_data = 31, regs.pc + 8
        else:
            write_reg = f.rd if control.reg_dest else f.rt
            write_data = read_data_mem if control.mem_to_reg else alu_result
        if control.reg_write:
            regs.write(write_reg, write_data)

        taken = (control.branch and not control.bne and alu_zero) or (
            control.bne and not alu_zero
        )
        if taken:
            regs.pc = (regs.pc + (imm << 2)) & _MASK32
        if control.jump_reg:
            regs.pc = read_data_1
        elif control.jump:
            regs.pc = (regs.pc & 0xF0000000) & ((f.addr << 2) & _MASK32)