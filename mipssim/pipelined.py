"""Five-stage pipelined execution with forwarding and hazard detection."""

from __future__ import annotations

from dataclasses import dataclass

from mipssim.alu import ALU
from mipssim.control import ControlSignals, decode_fields, extend_immediate
from mipssim.memory import Memory
from mipssim.regfile import Registers

_MASK32 = 0xFFFFFFFF


@dataclass
class IfIdRegister:
    """Latch between fetch and decode."""

    instruction: int = 0
    pc: int = 0


@dataclass
class IdExRegister:
    """Latch between decode and execute."""

    read_data_1: int = 0
    read_data_2: int = 0
    opcode: int = 0
    rs: int = 0
    rt: int = 0
    rd: int = 0
    shamt: int = 0
    funct: int = 0
    imm: int = 0
    alu_src: bool = False
    reg_dest: bool = False
    alu_op: int = 0
    shift: bool = False
    mem_read: bool = False
    mem_write: bool = False
    halfword: bool = False
    byte: bool = False
    reg_write: bool = False
    mem_to_reg: bool = False
    branch: bool = False
    bne: bool = False
    jump: bool = False
    jump_reg: bool = False
    link: bool = False
    branch_target: int = 0
    jump_target: int = 0
    pc: int = 0


@dataclass
class ExMemRegister:
    """Latch between execute and memory access."""

    alu_result: int = 0
    write_data: int = 0
    write_reg: int = 0
    mem_read: bool = False
    mem_write: bool = False
    halfword: bool = False
    byte: bool = False
    reg_write: bool = False
    mem_to_reg: bool = False
    branch_taken: bool = False
    branch_target: int = 0
    jump: bool = False
    jump_target: int = 0
    pc: int = 0
    link: bool = False


@dataclass
class MemWbRegister:
    """Latch between memory access and write-back."""

    write_data: int = 0
    write_reg: int = 0
    reg_write: bool = False
    pc: int = 0


class PipelinedCore:
    """A classic IF/ID/EX/MEM/WB pipeline; each :meth:`advance` is one cycle."""

    def __init__(self, memory: Memory, registers: Registers, alu: ALU | None = None) -> None:
        self.memory = memory
        self.registers = registers
        self.alu = alu if alu is not None else ALU()
        self.if_id = IfIdRegister()
        self.id_ex = IdExRegister()
        self.ex_mem = ExMemRegister()
        self.mem_wb = MemWbRegister()
        self.current_pc = 0

    def _access(self, address: int, write_data: int, mem_read: bool, mem_write: bool,
                old: int) -> int | None:
        """Perform one access; return the data word (or ``old``), None on a miss."""
        result = self.memory.access(address, write_data, mem_read, mem_write)
        if not result.hit:
            return None
        return old if result.data is None else result.data

    def _memory_stage(self) -> int | None:
        """Run the MEM stage; return the loaded word, or None if memory stalled."""
        em = self.ex_mem
        read_data_mem = 0
        if not (em.mem_read or em.mem_write):
            return read_data_mem
        if em.mem_read:
            data = self._access(em.alu_result, em.write_data, em.mem_read, em.mem_write,
                                read_data_mem)
            if data is None:
                return None
            read_data_mem = data
        if em.mem_write:
            if em.halfword or em.byte:
                data = self._access(em.alu_result, em.write_data, em.mem_read,
                                    em.mem_write, read_data_mem)
                if data is None:
                    return None
                read_data_mem = data
                if em.halfword:
                    write_data_mem = (read_data_mem & 0xFFFF0000) | (em.write_data & 0xFFFF)
                else:
                    write_data_mem = (read_data_mem & 0xFFFFFF00) | (em.write_data & 0xFF)
            else:
                write_data_mem = em.write_data
            data = self._access(em.alu_result, write_data_mem, em.mem_read, em.mem_write,
                                read_data_mem)
            if data is None:
                return None
            read_data_mem = data
        if em.halfword:
            read_data_mem &= 0xFFFF
        elif em.byte:
            read_data_mem &= 0xFF
        return read_data_mem

    def _forward(self, write_reg: int, value: int) -> None:
        if self.id_ex.rs == write_reg:
            self.id_ex.read_data_1 = value
        if self.id_ex.rt == write_reg:
            self.id_ex.read_data_2 = value

    def _decode(self) -> IdExRegister:
        instruction = self.if_id.instruction
        pc = self.if_id.pc
        control = ControlSignals().decode(instruction)
        f = decode_fields(instruction)
        imm = extend_immediate(f.imm, control.zero_extend)
        return IdExRegister(
            read_data_1=self.registers.read(f.rs),
            read_data_2=self.registers.read(f.rt),
            opcode=f.opcode,
            rs=f.rs,
            rt=f.rt,
            rd=f.rd,
            shamt=f.shamt,
            funct=f.funct,
            imm=imm,
            alu_src=control.alu_src,
            reg_dest=control.reg_dest,
            alu_op=control.alu_op,
            shift=control.shift,
            mem_read=control.mem_read,
            mem_write=control.mem_write,
            halfword=control.halfword,
            byte=control.byte,
            reg_write=control.reg_write,
            mem_to_reg=control.mem_to_reg,
            branch=control.branch,
            bne=control.bne,
            jump=control.jump,
            jump_reg=control.jump_reg,
            link=control.link,
            branch_target=(pc + 4 + (imm << 2)) & _MASK32,
            jump_target=((pc & 0xF0000000) | (f.addr << 2)) & _MASK32,
            pc=pc,
        )

    def advance(self) -> None:
        """Advance every pipeline stage by one cycle."""
        regs = self.registers
        flush = False
        new_pc = (self.current_pc + 4) & _MASK32

        # Write back.
        mw = self.mem_wb
        if mw.reg_write:
            regs.write(mw.write_reg, mw.write_data)
        regs.pc = mw.pc

        # Forward from MEM/WB into the instruction about to execute.
        if mw.reg_write and mw.write_reg != 0:
            self._forward(mw.write_reg, mw.write_data)

        # Memory access.
        read_data_mem = self._memory_stage()
        if read_data_mem is None:
            return
        em = self.ex_mem
        write_data = read_data_mem if em.mem_to_reg else em.alu_result
        if em.link:
            write_data = (em.pc + 8) & _MASK32
        self.mem_wb = MemWbRegister(
            write_data=write_data,
            write_reg=em.write_reg,
            reg_write=em.reg_write,
            pc=em.pc,
        )

        # Execute, forwarding from EX/MEM.
        if em.reg_write and em.write_reg != 0:
            self._forward(em.write_reg, em.alu_result)
        ie = self.id_ex
        operand_1 = ie.shamt if ie.shift else ie.read_data_1
        operand_2 = ie.imm if ie.alu_src else ie.read_data_2
        self.alu.generate_control_inputs(ie.alu_op, ie.funct, ie.opcode)
        ex_result, alu_zero = self.alu.execute(operand_1, operand_2)

        branch_taken = bool((ie.branch and not ie.bne and alu_zero) or (ie.bne and not alu_zero))
        if branch_taken or ie.jump or ie.jump_reg:
            flush = True
            if ie.jump_reg:
                new_pc = ie.read_data_1
            elif ie.jump:
                new_pc = ie.jump_target
            else:
                new_pc = ie.branch_target

        if ie.link:
            write_reg = 31
        else:
            write_reg = ie.rd if ie.reg_dest else ie.rt
        self.ex_mem = ExMemRegister(
            alu_result=ex_result,
            write_data=ie.read_data_2,
            write_reg=write_reg,
            mem_read=ie.mem_read,
            mem_write=ie.mem_write,
            halfword=ie.halfword,
            byte=ie.byte,
            reg_write=ie.reg_write,
            mem_to_reg=ie.mem_to_reg,
            branch_taken=branch_taken,
            branch_target=ie.branch_target,
            jump=ie.jump or ie.jump_reg,
            jump_target=ie.jump_target,
            pc=ie.pc,
            link=ie.link,
        )

        if flush:
            self.id_ex = IdExRegister()
            self.if_id = IfIdRegister()
            self.current_pc = new_pc
            return

        # Decode.
        self.id_ex = decoded = self._decode()

        # Load-use hazard: insert a bubble and hold fetch.
        em = self.ex_mem
        if em.mem_read and em.write_reg != 0:
            rt_used = decoded.branch or decoded.mem_write or decoded.opcode == 0
            if decoded.rs == em.write_reg or (decoded.rt == em.write_reg and rt_used):
                self.id_ex = IdExRegister()
                return

        # Fetch.
        instruction = self._access(self.current_pc, 0, True, False, 0)
        if instruction is None:
            self.if_id = IfIdRegister()
            return
        self.if_id = IfIdRegister(instruction=instruction, pc=self.current_pc)
        self.current_pc = new_pc