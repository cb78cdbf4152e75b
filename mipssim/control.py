"""Instruction decoding into control signals and fields."""

from __future__ import annotations

from dataclasses import dataclass, fields

_IMM_SIGN_FILL = 0xFFFF0000


@dataclass
class ControlSignals:
    """Control signals produced by decoding one instruction."""

    reg_dest: bool = False
    jump: bool = False
    jump_reg: bool = False
    link: bool = False
    shift: bool = False
    branch: bool = False
    bne: bool = False
    mem_read: bool = False
    mem_to_reg: bool = False
    alu_op: int = 0
    mem_write: bool = False
    halfword: bool = False
    byte: bool = False
    alu_src: bool = False
    reg_write: bool = False
    zero_extend: bool = False

    def reset(self) -> None:
        """Clear every signal."""
        for f in fields(self):
            setattr(self, f.name, f.default)

    def decode(self, instruction: int) -> "ControlSignals":
        """Set the signals for ``instruction``; return self."""
        self.reset()
        opcode = (instruction >> 26) & 0x3F
        funct = instruction & 0x3F

        if opcode == 0:
            self.reg_dest = True
            self.reg_write = True
            self.alu_op = 2
            if funct == 0x08:
                self.reg_dest = False
                self.reg_write = False
                self.alu_op = 0
                self.jump = True
                self.jump_reg = True
            if funct in (0x0, 0x2):
                self.shift = True
        elif opcode in (0x2, 0x3):
            self.jump = True
            if opcode == 0x3:
                self.link = True
                self.reg_write = True
        else:
            self.alu_src = True
            if opcode in (0x4, 0x5):
                self.branch = True
                self.alu_op = 1
                self.alu_src = False
                self.bne = opcode == 0x5
            elif opcode in (0x2B, 0x28, 0x29):
                self.mem_write = True
                self.byte = opcode == 0x28
                self.halfword = opcode == 0x29
            elif 0x23 <= opcode <= 0x25 or opcode == 0x30:
                self.mem_read = True
                self.mem_to_reg = True
                self.reg_write = True
                self.byte = opcode == 0x24
                self.halfword = opcode == 0x25
            else:
                self.reg_write = True
                self.alu_op = 3
                self.zero_extend = opcode in (0xC, 0xD)
        return self

    def describe(self) -> str:
        """Return a listing of the main signals, one per line."""
        rows = [
            ("REG_DEST", self.reg_dest),
            ("JUMP", self.jump),
            ("BRANCH", self.branch),
            ("MEM_READ", self.mem_read),
            ("MEM_TO_REG", self.mem_to_reg),
            ("ALU_OP", self.alu_op),
            ("MEM_WRITE", self.mem_write),
            ("ALU_SRC", self.alu_src),
            ("REG_WRITE", self.reg_write),
        ]
        return "".join(f"{name}: {int(value)}\n" for name, value in rows)


@dataclass(frozen=True)
class InstructionFields:
    """The bit fields of a 32-bit MIPS instruction."""

    opcode: int
    rs: int
    rt: int
    rd: int
    shamt: int
    funct: int
    imm: int
    addr: int


def decode_fields(instruction: int) -> InstructionFields:
    """Split an instruction word into its fields (immediate not extended)."""
    return InstructionFields(
        opcode=(instruction >> 26) & 0x3F,
        rs=(instruction >> 21) & 0x1F,
        rt=(instruction >> 16) & 0x1F,
        rd=(instruction >> 11) & 0x1F,
        shamt=(instruction >> 6) & 0x1F,
        funct=instruction & 0x3F,
        imm=instruction & 0xFFFF,
        addr=instruction & 0x3FFFFFF,
    )


def extend_immediate(imm: int, zero_extend: bool) -> int:
    """Zero- or sign-extend a 16-bit immediate to 32 bits."""
    imm &= 0xFFFF
    if zero_extend or not imm >> 15:
        return imm
    return _IMM_SIGN_FILL | imm