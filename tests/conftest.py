import errno
from types import SimpleNamespace

import pytest

from linux_smbus.kernel.abi import I2C_FUNCS
from linux_smbus.kernel.funcs import I2C_FUNC_I2C, I2C_FUNC_SMBUS_EMUL

# what a typical SoC adapter with SMBus emulation reports
DEFAULT_FUNCS = I2C_FUNC_I2C | I2C_FUNC_SMBUS_EMUL


@pytest.fixture
def device(tmp_path):
    """A regular file standing in for /dev/i2c-N; os.open on it really succeeds."""
    p = tmp_path / "i2c-7"
    p.write_bytes(b"")
    return p


@pytest.fixture
def adapter(mocker):
    """
    Fake kernel side of the i2c-dev ioctls.

    - I2C_FUNCS writes `state.funcs` into the caller's buffer
    - requests listed in `state.fail` raise OSError with that errno
    - `state.on` maps a request to a callback(arg) for argument-block tests
    """
    state = SimpleNamespace(funcs=DEFAULT_FUNCS, fail={}, on={}, calls=[])

    def _ioctl(fd, request, arg=0, mutate=True):
        state.calls.append((request, arg))
        if request in state.fail:
            code = state.fail[request]
            raise OSError(code, errno.errorcode.get(code, "error"))
        if request == I2C_FUNCS:
            arg[0] = state.funcs
        if request in state.on:
            state.on[request](arg)
        return 0

    state.mock = mocker.patch("linux_smbus.bus.smbus.fcntl.ioctl", side_effect=_ioctl)
    return state
