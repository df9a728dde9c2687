from __future__ import annotations

import array
import fcntl
import logging
import os
from typing import Optional, Union

from ..kernel.abi import (
    I2C_FUNCS,
    I2C_PEC,
    I2C_SLAVE,
    I2C_SLAVE_FORCE,
    I2C_TENBIT,
    MAX_10BIT_ADDR,
    MAX_7BIT_ADDR,
    ioctl_name,
)
from ..kernel.funcs import I2C_FUNC_10BIT_ADDR, I2C_FUNC_SMBUS_PEC, FunctionFlags, flag_name
from .errors import IoctlError, OpenError, UnsupportedFunctionError, UseAfterCloseError

log = logging.getLogger(__name__)

DEVICE_PATH = "/dev/i2c-{}"
CLOSED_FD = -1

BusId = Union[int, str, os.PathLike]


def bus_path(bus: BusId) -> str:
    """`1` -> `/dev/i2c-1`; paths pass through unchanged."""
    if isinstance(bus, bool):
        raise TypeError("bus must be an int or a path, not bool")
    if isinstance(bus, int):
        if bus < 0:
            raise ValueError(f"bus number must be >= 0, got {bus}")
        return DEVICE_PATH.format(bus)
    return os.fspath(bus)


class SMBus:
    """
    One open i2c-dev adapter (/dev/i2c-N).

    - opening queries I2C_FUNCS right away, so `funcs` is always known
    - `dispatch` is a single ioctl; failures become IoctlError, never retried
    - `close` poisons the descriptor; anything after that raises UseAfterCloseError
    - not thread-safe; serialize access to a shared handle yourself

    Use as a context manager:

        with SMBus(1) as bus:
            print(bus.funcs.names())
    """

    def __init__(self, bus: BusId, force: bool = False):
        self.path = bus_path(bus)
        self.address: Optional[int] = None
        self.force = bool(force)
        self._force_last: Optional[bool] = None
        self.ten_bit = False
        self.pec = False
        self._fd = CLOSED_FD

        try:
            fd = os.open(self.path, os.O_RDWR)
        except OSError as e:
            raise OpenError(self.path, e.errno, e.strerror) from e

        buf = array.array("I", [0])
        try:
            try:
                fcntl.ioctl(fd, I2C_FUNCS, buf, True)
            except OSError as e:
                raise IoctlError(I2C_FUNCS, e.errno, e.strerror, self.path) from e
        except BaseException:
            os.close(fd)
            raise

        self._fd = fd
        self._funcs = FunctionFlags(buf[0])
        log.debug("opened %s (fd=%d, funcs=%s)", self.path, fd, self._funcs)
        if self._funcs.unknown_bits():
            log.warning("%s reports %s", self.path, flag_name(self._funcs.unknown_bits()))

    @classmethod
    def open(cls, bus: BusId, force: bool = False) -> "SMBus":
        return cls(bus, force=force)

    def __enter__(self) -> "SMBus":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.closed:
            self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"fd={self._fd}"
        return f"<SMBus {self.path} {state} funcs={self._funcs}>"

    @property
    def closed(self) -> bool:
        return self._fd == CLOSED_FD

    @property
    def fd(self) -> int:
        if self._fd == CLOSED_FD:
            raise UseAfterCloseError(self.path)
        return self._fd

    @property
    def funcs(self) -> FunctionFlags:
        self._check_open()
        return self._funcs

    def _check_open(self) -> None:
        if self._fd == CLOSED_FD:
            raise UseAfterCloseError(self.path)

    def close(self) -> None:
        fd = self.fd
        # poison first; a failing close() must not leave a reusable number behind
        self._fd = CLOSED_FD
        log.debug("closing %s (fd=%d)", self.path, fd)
        os.close(fd)

    def dispatch(self, command: int, arg=0, mutate: bool = True):
        """
        Issue one ioctl on the adapter.

        `arg` is an int or a writable buffer (ctypes argument block, array).
        Returns what fcntl.ioctl returns.
        """
        fd = self.fd
        log.debug("%s: ioctl %s", self.path, ioctl_name(command))
        try:
            return fcntl.ioctl(fd, command, arg, mutate)
        except OSError as e:
            raise IoctlError(command, e.errno, e.strerror, self.path) from e

    def require(self, bits: int) -> None:
        if bits not in self.funcs:
            raise UnsupportedFunctionError(self.path, bits)

    def set_address(self, address: int, force: Optional[bool] = None, ten_bit: bool = False) -> None:
        """
        Bind subsequent transfers to a slave address (I2C_SLAVE / I2C_SLAVE_FORCE).

        `force` applies to this call only; None falls back to the handle default.
        """
        self._check_open()
        force = self.force if force is None else bool(force)
        ten_bit = bool(ten_bit)
        limit = MAX_10BIT_ADDR if ten_bit else MAX_7BIT_ADDR
        if not 0 <= int(address) <= limit:
            raise ValueError(f"address 0x{int(address):x} out of range for {'10' if ten_bit else '7'}-bit addressing")

        if ten_bit != self.ten_bit:
            if ten_bit:
                self.require(I2C_FUNC_10BIT_ADDR)
            self.dispatch(I2C_TENBIT, int(ten_bit))
            self.ten_bit = ten_bit
            self.address = None

        if address == self.address and force == self._force_last:
            return
        self.dispatch(I2C_SLAVE_FORCE if force else I2C_SLAVE, int(address))
        self.address = int(address)
        self._force_last = force

    def enable_pec(self, enable: bool = True) -> None:
        enable = bool(enable)
        if enable:
            self.require(I2C_FUNC_SMBUS_PEC)
        else:
            self._check_open()
        self.dispatch(I2C_PEC, int(enable))
        self.pec = enable
