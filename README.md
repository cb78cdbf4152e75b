# mipssim

Building blocks for a cycle-level simulator of a subset of the MIPS32
instruction set: an ALU, an instruction decoder, a register file, main memory
behind a two-level cache, a single-cycle core, a five-stage pipelined core,
and the queues and buffers of an out-of-order core.

## Installation

```
pip install .
```

No third-party packages are needed at run time. To run the tests:

```
pip install ".[test]"
pytest
```

## Running instructions on the single-cycle core

Programs are placed in memory word by word with `Memory.access`. At
optimization level 0 (the default) every access completes at once.

```python
import io

from mipssim.memory import Memory
from mipssim.regfile import Registers
from mipssim.single_cycle import SingleCycleCore

memory = Memory()
memory.access(0, 0x20080005, False, True)   # addi $t0, $zero, 5

registers = Registers()
trace = io.StringIO()
core = SingleCycleCore(memory, registers, out=trace)
core.advance()

assert registers.read(8) == 5
assert registers.pc == 4
assert trace.getvalue() == "PC: 0x0\n"
```

`SingleCycleCore.advance` runs one whole instruction and writes a
`PC: 0x…` line for it to `out` (standard output when `out` is not given).

## Modules

- `mipssim.alu` — `ALU`: `generate_control_inputs(alu_op, funct, opcode)`
  selects an `AluOp`; `execute(operand_1, operand_2)` returns the 32-bit
  result and the zero flag.
- `mipssim.control` — `ControlSignals.decode(instruction)` sets the control
  signals; `decode_fields` splits a word into an `InstructionFields`;
  `extend_immediate` zero- or sign-extends a 16-bit immediate.
- `mipssim.regfile` — `Registers`: 32 registers plus `pc`, with `read`,
  `write`, `is_ready` and `dump`.
- `mipssim.memory` — `Memory` (2,097,152 words), `Cache`, `CacheLine`, `MSHR`
  and `MSHREntry`. `Memory.access(address, write_data, mem_read, mem_write)`
  returns an `AccessResult(hit, data)`. Above level 0 (`set_opt_level`),
  requests queue in the MSHR, report a miss until served, and each call to
  `Memory.tick()` advances them one cycle through the caches:
  - L1: 32 KiB, 8-way, 64-byte lines, 12-cycle miss penalty
  - L2: 256 KiB, 8-way, 64-byte lines, 59-cycle miss penalty
- `mipssim.single_cycle` — `SingleCycleCore`.
- `mipssim.pipelined` — `PipelinedCore`, an IF/ID/EX/MEM/WB pipeline with
  forwarding, load-use stalls and flushes on taken branches and jumps; each
  `advance()` is one cycle. It does not call `Memory.tick()` itself.
- `mipssim.frontend` — `InstructionQueue`, `PredictiveRegisterFile` (register
  renaming) and `BranchPredictor` (2-bit counters and a branch target buffer).
- `mipssim.rob` — `ReorderBuffer`.
- `mipssim.lsq` — `LoadStoreBuffer` and `SchedulingQueue`.

Decoded instructions: `add`, `addu`, `sub`, `subu`, `and`, `or`, `nor`,
`slt`, `sltu`, `sll`, `srl`, `jr`, `addi`, `addiu`, `andi`, `ori`, `slti`,
`sltiu`, `lui`, `beq`, `bne`, `j`, `jal`, `lw`, `lbu`, `lhu`, `ll`, `sw`,
`sb`, `sh`.

## What the package does not do

- There is no command-line program and no loader for executable files:
  programs must be written into `Memory` from Python.
- There is no processor that picks a core by optimization level, and no
  out-of-order core that drives the instruction queue, scheduling queue,
  load/store buffer and reorder buffer; those structures are provided on
  their own.