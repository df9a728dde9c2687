from __future__ import annotations

import errno as _errno
import os
from typing import Optional

from ..kernel.abi import ioctl_name
from ..kernel.funcs import flag_name


class SMBusError(OSError):
    """Base class for bus handle errors. Keeps `errno` so callers can branch on it."""


class OpenError(SMBusError):
    """The device node could not be opened; `filename` is the path."""

    def __init__(self, path: str, errno: int, strerror: Optional[str] = None):
        super().__init__(errno, strerror or os.strerror(errno), path)
        self.path = path


class IoctlError(SMBusError):
    """A failed ioctl. `command` is the raw request code."""

    def __init__(self, command: int, errno: int, strerror: Optional[str] = None, path: Optional[str] = None):
        super().__init__(errno, strerror or os.strerror(errno))
        self.command = command
        self.path = path

    def __str__(self) -> str:
        where = f" on {self.path}" if self.path else ""
        return f"[Errno {self.errno}] ioctl {ioctl_name(self.command)}{where}: {self.strerror}"


class UseAfterCloseError(SMBusError):
    def __init__(self, path: Optional[str] = None):
        super().__init__(_errno.EBADF, "bus handle is closed", path)
        self.path = path


class UnsupportedFunctionError(SMBusError):
    """The adapter's functionality mask lacks a capability the request needs."""

    def __init__(self, path: str, bits: int):
        super().__init__(_errno.EOPNOTSUPP, f"adapter does not support {flag_name(bits)}", path)
        self.path = path
        self.bits = bits
