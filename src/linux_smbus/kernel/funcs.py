from __future__ import annotations

import operator
from functools import reduce
from typing import List, Tuple

# I2C_FUNC_* bits, uapi/linux/i2c.h
I2C_FUNC_I2C = 0x00000001
I2C_FUNC_10BIT_ADDR = 0x00000002
I2C_FUNC_PROTOCOL_MANGLING = 0x00000004  # I2C_M_IGNORE_NAK etc.
I2C_FUNC_SMBUS_PEC = 0x00000008
I2C_FUNC_NOSTART = 0x00000010  # I2C_M_NOSTART
I2C_FUNC_SLAVE = 0x00000020
I2C_FUNC_SMBUS_BLOCK_PROC_CALL = 0x00008000
I2C_FUNC_SMBUS_QUICK = 0x00010000
I2C_FUNC_SMBUS_READ_BYTE = 0x00020000
I2C_FUNC_SMBUS_WRITE_BYTE = 0x00040000
I2C_FUNC_SMBUS_READ_BYTE_DATA = 0x00080000
I2C_FUNC_SMBUS_WRITE_BYTE_DATA = 0x00100000
I2C_FUNC_SMBUS_READ_WORD_DATA = 0x00200000
I2C_FUNC_SMBUS_WRITE_WORD_DATA = 0x00400000
I2C_FUNC_SMBUS_PROC_CALL = 0x00800000
I2C_FUNC_SMBUS_READ_BLOCK_DATA = 0x01000000
I2C_FUNC_SMBUS_WRITE_BLOCK_DATA = 0x02000000
I2C_FUNC_SMBUS_READ_I2C_BLOCK = 0x04000000  # with 1-byte register address
I2C_FUNC_SMBUS_WRITE_I2C_BLOCK = 0x08000000
I2C_FUNC_SMBUS_HOST_NOTIFY = 0x10000000

# composites
I2C_FUNC_SMBUS_BYTE = I2C_FUNC_SMBUS_READ_BYTE | I2C_FUNC_SMBUS_WRITE_BYTE
I2C_FUNC_SMBUS_BYTE_DATA = I2C_FUNC_SMBUS_READ_BYTE_DATA | I2C_FUNC_SMBUS_WRITE_BYTE_DATA
I2C_FUNC_SMBUS_WORD_DATA = I2C_FUNC_SMBUS_READ_WORD_DATA | I2C_FUNC_SMBUS_WRITE_WORD_DATA
I2C_FUNC_SMBUS_BLOCK_DATA = I2C_FUNC_SMBUS_READ_BLOCK_DATA | I2C_FUNC_SMBUS_WRITE_BLOCK_DATA
I2C_FUNC_SMBUS_I2C_BLOCK = I2C_FUNC_SMBUS_READ_I2C_BLOCK | I2C_FUNC_SMBUS_WRITE_I2C_BLOCK
I2C_FUNC_SMBUS_EMUL = (
    I2C_FUNC_SMBUS_QUICK
    | I2C_FUNC_SMBUS_BYTE
    | I2C_FUNC_SMBUS_BYTE_DATA
    | I2C_FUNC_SMBUS_WORD_DATA
    | I2C_FUNC_SMBUS_PROC_CALL
    | I2C_FUNC_SMBUS_WRITE_BLOCK_DATA
    | I2C_FUNC_SMBUS_I2C_BLOCK
    | I2C_FUNC_SMBUS_PEC
)

MASK_MAX = 0xFFFFFFFF

# Declaration order is output order for flag_names(); composites come last
# so a caller sees both the halves and the pair.
FLAG_REGISTRY: Tuple[Tuple[int, str], ...] = (
    (I2C_FUNC_I2C, "I2C"),
    (I2C_FUNC_10BIT_ADDR, "10-bit address"),
    (I2C_FUNC_PROTOCOL_MANGLING, "Protocol mangling"),
    (I2C_FUNC_SMBUS_PEC, "SMBus PEC"),
    (I2C_FUNC_NOSTART, "No start"),
    (I2C_FUNC_SLAVE, "Slave"),
    (I2C_FUNC_SMBUS_BLOCK_PROC_CALL, "Block procedure call"),
    (I2C_FUNC_SMBUS_QUICK, "Quick"),
    (I2C_FUNC_SMBUS_READ_BYTE, "Read byte"),
    (I2C_FUNC_SMBUS_WRITE_BYTE, "Write byte"),
    (I2C_FUNC_SMBUS_READ_BYTE_DATA, "Read byte data"),
    (I2C_FUNC_SMBUS_WRITE_BYTE_DATA, "Write byte data"),
    (I2C_FUNC_SMBUS_READ_WORD_DATA, "Read word data"),
    (I2C_FUNC_SMBUS_WRITE_WORD_DATA, "Write word data"),
    (I2C_FUNC_SMBUS_PROC_CALL, "Procedure call"),
    (I2C_FUNC_SMBUS_READ_BLOCK_DATA, "Read block data"),
    (I2C_FUNC_SMBUS_WRITE_BLOCK_DATA, "Write block data"),
    (I2C_FUNC_SMBUS_READ_I2C_BLOCK, "Read I2C block"),
    (I2C_FUNC_SMBUS_WRITE_I2C_BLOCK, "Write I2C block"),
    (I2C_FUNC_SMBUS_HOST_NOTIFY, "Host notify"),
    (I2C_FUNC_SMBUS_BYTE, "Byte"),
    (I2C_FUNC_SMBUS_BYTE_DATA, "Byte data"),
    (I2C_FUNC_SMBUS_WORD_DATA, "Word data"),
    (I2C_FUNC_SMBUS_BLOCK_DATA, "Block data"),
    (I2C_FUNC_SMBUS_I2C_BLOCK, "I2C block"),
    (I2C_FUNC_SMBUS_EMUL, "Emulated"),
)

_NAMES = dict(FLAG_REGISTRY)

KNOWN_BITS = reduce(operator.or_, _NAMES, 0)


def has_all(mask: int, bits: int) -> bool:
    """True iff every bit of `bits` is set in `mask` (never `mask & bits != 0`)."""
    return (int(mask) & int(bits)) == int(bits)


def flag_name(bits: int) -> str:
    name = _NAMES.get(int(bits))
    if name is None:
        return "unknown flag bits: 0x%08x" % int(bits)
    return name


def flag_names(mask: int) -> List[str]:
    return [name for bits, name in FLAG_REGISTRY if has_all(mask, bits)]


class FunctionFlags(int):
    """
    Adapter functionality mask as returned by the I2C_FUNCS ioctl.

    - 32-bit unsigned, immutable
    - str() renders as 0x%08x, e.g. 0x00060000
    - `bits in flags` is the all-bits test, so composites need both halves
    """

    def __new__(cls, value: int = 0) -> "FunctionFlags":
        v = int(value)
        if not 0 <= v <= MASK_MAX:
            raise ValueError(f"functionality mask out of 32-bit range: {value!r}")
        return super().__new__(cls, v)

    def __str__(self) -> str:
        return "0x%08x" % int(self)

    def __repr__(self) -> str:
        return f"FunctionFlags({self})"

    def __format__(self, spec: str) -> str:
        if not spec:
            return str(self)
        return format(int(self), spec)

    def __contains__(self, bits: int) -> bool:
        return has_all(self, bits)

    def has_all(self, bits: int) -> bool:
        return has_all(self, bits)

    def names(self) -> List[str]:
        return flag_names(self)

    def unknown_bits(self) -> int:
        return int(self) & ~KNOWN_BITS & MASK_MAX

    def describe(self) -> List[str]:
        """Flag names, followed by a placeholder for any unregistered bits."""
        out = flag_names(self)
        extra = self.unknown_bits()
        if extra:
            out.append(flag_name(extra))
        return out
