"""Building blocks for cycle-level simulation of a MIPS32 subset: ALU, decoder, caches, cores and out-of-order buffers."""

__version__ = "0.1.0"