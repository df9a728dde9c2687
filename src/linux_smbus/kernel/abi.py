from __future__ import annotations

import ctypes
from typing import Iterable, Union

# ioctl commands, uapi/linux/i2c-dev.h
I2C_SLAVE = 0x0703
I2C_TENBIT = 0x0704
I2C_FUNCS = 0x0705
I2C_SLAVE_FORCE = 0x0706
I2C_RDWR = 0x0707
I2C_PEC = 0x0708
I2C_SMBUS = 0x0720

IOCTL_NAMES = {
    I2C_SLAVE: "I2C_SLAVE",
    I2C_TENBIT: "I2C_TENBIT",
    I2C_FUNCS: "I2C_FUNCS",
    I2C_SLAVE_FORCE: "I2C_SLAVE_FORCE",
    I2C_RDWR: "I2C_RDWR",
    I2C_PEC: "I2C_PEC",
    I2C_SMBUS: "I2C_SMBUS",
}

# i2c_smbus_ioctl_data.read_write, uapi/linux/i2c.h
I2C_SMBUS_WRITE = 0
I2C_SMBUS_READ = 1

# i2c_smbus_ioctl_data.size
I2C_SMBUS_QUICK = 0
I2C_SMBUS_BYTE = 1
I2C_SMBUS_BYTE_DATA = 2
I2C_SMBUS_WORD_DATA = 3
I2C_SMBUS_PROC_CALL = 4
I2C_SMBUS_BLOCK_DATA = 5  # not emulated by pure-I2C adapters
I2C_SMBUS_BLOCK_PROC_CALL = 7
I2C_SMBUS_I2C_BLOCK_DATA = 8

I2C_SMBUS_BLOCK_MAX = 32

# i2c_msg.flags
I2C_M_RD = 0x0001
I2C_M_TEN = 0x0010

MAX_7BIT_ADDR = 0x7F
MAX_10BIT_ADDR = 0x3FF


def ioctl_name(command: int) -> str:
    """Symbolic form of an i2c-dev ioctl, e.g. ``I2C_FUNCS (0x0705)``."""
    name = IOCTL_NAMES.get(command)
    if name is None:
        return f"0x{command:04x}"
    return f"{name} (0x{command:04x})"


class SMBusData(ctypes.Union):
    """union i2c_smbus_data: byte, word, or length-prefixed block (+1 for PEC)."""
    _fields_ = [
        ("byte", ctypes.c_uint8),
        ("word", ctypes.c_uint16),
        ("block", ctypes.c_uint8 * (I2C_SMBUS_BLOCK_MAX + 2)),
    ]


class SMBusIoctlData(ctypes.Structure):
    """
    struct i2c_smbus_ioctl_data, the I2C_SMBUS argument block.

    `data` points at a SMBusData union owned by the Python object, so the
    union stays alive as long as the block does.
    """
    _fields_ = [
        ("read_write", ctypes.c_uint8),
        ("command", ctypes.c_uint8),
        ("size", ctypes.c_uint32),
        ("data", ctypes.POINTER(SMBusData)),
    ]

    @classmethod
    def create(cls, read_write: int = I2C_SMBUS_READ, command: int = 0,
               size: int = I2C_SMBUS_BYTE_DATA) -> "SMBusIoctlData":
        if read_write not in (I2C_SMBUS_READ, I2C_SMBUS_WRITE):
            raise ValueError(f"read_write must be I2C_SMBUS_READ or I2C_SMBUS_WRITE, got {read_write}")
        if not 0 <= command <= 0xFF:
            raise ValueError(f"command out of range: {command}")
        data = SMBusData()
        blk = cls(read_write=read_write, command=command, size=size, data=ctypes.pointer(data))
        blk._union = data
        return blk

    def block_payload(self) -> bytes:
        """Bytes of a block transfer; block[0] carries the length."""
        n = min(int(self.data.contents.block[0]), I2C_SMBUS_BLOCK_MAX)
        return bytes(self.data.contents.block[1:n + 1])

    def set_block_payload(self, payload: Union[bytes, bytearray, Iterable[int]]) -> None:
        buf = bytes(payload)
        if len(buf) > I2C_SMBUS_BLOCK_MAX:
            raise ValueError(f"block payload is {len(buf)} bytes, max is {I2C_SMBUS_BLOCK_MAX}")
        blk = self.data.contents.block
        blk[0] = len(buf)
        for i, b in enumerate(buf):
            blk[i + 1] = b


class I2CMsg(ctypes.Structure):
    """struct i2c_msg, one segment of an I2C_RDWR combined transfer."""
    _fields_ = [
        ("addr", ctypes.c_uint16),
        ("flags", ctypes.c_uint16),
        ("len", ctypes.c_uint16),
        ("buf", ctypes.POINTER(ctypes.c_uint8)),
    ]

    @classmethod
    def _create(cls, addr: int, flags: int, buf) -> "I2CMsg":
        if not 0 <= addr <= MAX_10BIT_ADDR:
            raise ValueError(f"address out of range: 0x{addr:x}")
        if addr > MAX_7BIT_ADDR:
            flags |= I2C_M_TEN
        msg = cls(addr=addr, flags=flags, len=len(buf),
                  buf=ctypes.cast(buf, ctypes.POINTER(ctypes.c_uint8)))
        msg._buf = buf
        return msg

    @classmethod
    def read(cls, addr: int, length: int) -> "I2CMsg":
        if not 0 < length <= 0xFFFF:
            raise ValueError(f"read length out of range: {length}")
        return cls._create(addr, I2C_M_RD, (ctypes.c_uint8 * length)())

    @classmethod
    def write(cls, addr: int, data: Union[bytes, bytearray, Iterable[int]]) -> "I2CMsg":
        payload = bytes(data)
        if len(payload) > 0xFFFF:
            raise ValueError(f"write length out of range: {len(payload)}")
        return cls._create(addr, 0, (ctypes.c_uint8 * len(payload)).from_buffer_copy(payload))

    def __bytes__(self) -> bytes:
        return bytes(self.buf[:self.len])


class I2CRdwrIoctlData(ctypes.Structure):
    """struct i2c_rdwr_ioctl_data, the I2C_RDWR argument block."""
    _fields_ = [
        ("msgs", ctypes.POINTER(I2CMsg)),
        ("nmsgs", ctypes.c_uint32),
    ]

    @classmethod
    def create(cls, *msgs: I2CMsg) -> "I2CRdwrIoctlData":
        if not msgs:
            raise ValueError("I2C_RDWR needs at least one message")
        arr = (I2CMsg * len(msgs))(*msgs)
        blk = cls(msgs=arr, nmsgs=len(msgs))
        blk._msgs = arr
        blk._keep = msgs
        return blk

    def __iter__(self):
        for i in range(self.nmsgs):
            yield self.msgs[i]
