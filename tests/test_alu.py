import pytest

from mipssim.alu import ALU, AluOp, MASK32


@pytest.fixture
def alu():
    return ALU()


@pytest.mark.parametrize(
    "alu_op, funct, opcode, expected",
    [
        (0, 0x24, 0x23, AluOp.ADD),
        (1, 0x00, 0x04, AluOp.SUB),
        (2, 0x00, 0x00, AluOp.SLL),
        (2, 0x02, 0x00, AluOp.SRL),
        (2, 0x08, 0x00, AluOp.ADD),
        (2, 0x21, 0x00, AluOp.ADD),
        (2, 0x23, 0x00, AluOp.SUB),
        (2, 0x24, 0x00, AluOp.AND),
        (2, 0x25, 0x00, AluOp.OR),
        (2, 0x27, 0x00, AluOp.NOR),
        (2, 0x2B, 0x00, AluOp.SLT),
        (2, 0x3F, 0x00, AluOp.ADD),
        (3, 0x00, 0x09, AluOp.ADD),
        (3, 0x00, 0x0A, AluOp.SLT),
        (3, 0x00, 0x0C, AluOp.AND),
        (3, 0x00, 0x0D, AluOp.OR),
        (3, 0x00, 0x0F, AluOp.LUI),
        (3, 0x00, 0x3E, AluOp.ADD),
    ],
)
def test_control_inputs(alu, alu_op, funct, opcode, expected):
    assert alu.generate_control_inputs(alu_op, funct, opcode) is expected
    assert alu.control_inputs is expected


def test_add_then_sub_round_trip(alu):
    alu.generate_control_inputs(0, 0, 0)
    total, _ = alu.execute(123456, 0x7FFF0000)
    alu.generate_control_inputs(1, 0, 0)
    back, _ = alu.execute(total, 0x7FFF0000)
    assert back == 123456


def test_add_wraps_to_32_bits(alu):
    alu.generate_control_inputs(0, 0, 0)
    result, zero = alu.execute(MASK32, 1)
    assert result == 0
    assert zero is True


def test_sub_equal_operands_sets_zero(alu):
    alu.generate_control_inputs(1, 0, 4)
    result, zero = alu.execute(77, 77)
    assert result == 0
    assert zero is True


def test_sub_unequal_clears_zero(alu):
    alu.generate_control_inputs(1, 0, 5)
    _, zero = alu.execute(77, 78)
    assert zero is False


def test_and_or_identities(alu):
    alu.generate_control_inputs(2, 0x24, 0)
    assert alu.execute(0xDEADBEEF, MASK32)[0] == 0xDEADBEEF
    alu.generate_control_inputs(2, 0x25, 0)
    assert alu.execute(0xDEADBEEF, 0)[0] == 0xDEADBEEF


def test_nor_of_zero_is_all_ones(alu):
    alu.generate_control_inputs(2, 0x27, 0)
    assert alu.execute(0, 0) == (MASK32, False)


def test_slt_is_signed(alu):
    alu.generate_control_inputs(2, 0x2A, 0)
    assert alu.execute(MASK32, 0)[0] == 1
    assert alu.execute(0, MASK32)[0] == 0


def test_shift_left_then_right(alu):
    alu.generate_control_inputs(2, 0x00, 0)
    shifted, _ = alu.execute(4, 0x0ABC)
    alu.generate_control_inputs(2, 0x02, 0)
    assert alu.execute(4, shifted)[0] == 0x0ABC


def test_lui(alu):
    alu.generate_control_inputs(3, 0, 0xF)
    assert alu.execute(0, 0x1234)[0] == 0x12340000