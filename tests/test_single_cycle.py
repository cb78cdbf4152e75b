import io

from mipssim.memory import Memory
from mipssim.regfile import Registers
from mipssim.single_cycle import SingleCycleCore


def i_type(op, rs, rt, imm):
    return (op << 26) | (rs << 21) | (rt << 16) | (imm & 0xFFFF)


def r_type(rs, rt, rd, shamt, funct):
    return (rs << 21) | (rt << 16) | (rd << 11) | (shamt << 6) | funct


def run(program, data=None):
    memory = Memory()
    for i, word in enumerate(program):
        memory.access(i * 4, word, False, True)
    for address, word in (data or {}).items():
        memory.access(address, word, False, True)
    regs = Registers()
    out = io.StringIO()
    core = SingleCycleCore(memory, regs, out=out)
    for _ in program:
        core.advance()
    return regs, memory, out


def test_addi_writes_register_and_advances_pc():
    regs, _, _ = run([i_type(0x8, 0, 8, 5)])
    assert regs.read(8) == 5
    assert regs.pc == 4


def test_trace_output():
    _, _, out = run([i_type(0x8, 0, 8, 5), i_type(0x8, 0, 9, 1)])
    assert out.getvalue() == "PC: 0x0\nPC: 0x4\n"


def test_negative_immediate_is_sign_extended():
    regs, _, _ = run([i_type(0x8, 0, 8, -4)])
    assert regs.read(8) == (-4) & 0xFFFFFFFF


def test_add_registers():
    regs, _, _ = run(
        [i_type(0x8, 0, 8, 5), i_type(0x8, 0, 9, 7), r_type(8, 9, 10, 0, 0x20)]
    )
    assert regs.read(10) == 5 + 7


def test_slt_signed_comparison():
    regs, _, _ = run([i_type(0x8, 0, 8, -1), r_type(8, 0, 9, 0, 0x2A)])
    assert regs.read(9) == 1


def test_lui_shifts_immediate():
    regs, _, _ = run([i_type(0xF, 0, 8, 0x1234)])
    assert regs.read(8) == 0x1234 << 16


def test_store_then_load_word():
    regs, memory, _ = run(
        [i_type(0x8, 0, 8, 0x1234), i_type(0x2B, 0, 8, 0x100), i_type(0x23, 0, 9, 0x100)]
    )
    assert regs.read(9) == 0x1234
    assert memory.access(0x100, 0, True, False).data == 0x1234


def test_store_byte_preserves_upper_bits():
    _, memory, _ = run(
        [i_type(0x8, 0, 8, 0xAB), i_type(0x28, 0, 8, 0x200)],
        data={0x200: 0x11223344},
    )
    assert memory.access(0x200, 0, True, False).data == 0x112233AB


def test_load_byte_unsigned_masks():
    regs, _, _ = run([i_type(0x24, 0, 8, 0x200)], data={0x200: 0x11223344})
    assert regs.read(8) == 0x44


def test_beq_taken_moves_pc():
    regs, _, _ = run([i_type(0x4, 0, 0, 3)])
    assert regs.pc == 4 + (3 << 2)


def test_bne_not_taken_falls_through():
    regs, _, _ = run([i_type(0x5, 0, 0, 3)])
    assert regs.pc == 4


def test_jr_jumps_to_register():
    memory = Memory()
    for i, word in enumerate([i_type(0x8, 0, 8, 0x40), r_type(8, 0, 0, 0, 0x08)]):
        memory.access(i * 4, word, False, True)
    regs = Registers()
    core = SingleCycleCore(memory, regs, out=io.StringIO())
    core.advance()
    core.advance()
    assert regs.pc == 0x40


def test_jump_target_uses_masked_pc():
    regs, _, _ = run([(0x2 << 26) | 0x10])
    assert regs.pc == 0


def test_jal_links_return_address():
    regs, _, _ = run([(0x3 << 26) | 0x10])
    assert regs.read(31) == 4 + 8
    assert regs.pc == 0