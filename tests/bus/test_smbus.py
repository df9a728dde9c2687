import errno
import os

import pytest

from linux_smbus.bus.errors import IoctlError, OpenError, UnsupportedFunctionError, UseAfterCloseError
from linux_smbus.bus.smbus import CLOSED_FD, SMBus, bus_path
from linux_smbus.kernel import abi
from linux_smbus.kernel.abi import SMBusIoctlData
from linux_smbus.kernel.funcs import I2C_FUNC_10BIT_ADDR, I2C_FUNC_I2C, FunctionFlags


def _fd_is_open(fd):
    try:
        os.fstat(fd)
    except OSError as e:
        assert e.errno == errno.EBADF
        return False
    return True


def test_bus_path():
    assert bus_path(1) == "/dev/i2c-1"
    assert bus_path("/dev/i2c-3") == "/dev/i2c-3"
    with pytest.raises(ValueError):
        bus_path(-1)
    with pytest.raises(TypeError):
        bus_path(True)


def test_open_queries_funcs_first(device, adapter):
    with SMBus(device) as bus:
        assert bus.path == str(device)
        assert isinstance(bus.funcs, FunctionFlags)
        assert bus.funcs == adapter.funcs
        assert adapter.calls[0][0] == abi.I2C_FUNCS
        assert _fd_is_open(bus.fd)


def test_open_by_number_uses_dev_path(mocker, adapter):
    fake_open = mocker.patch("linux_smbus.bus.smbus.os.open", return_value=99)
    bus = SMBus.open(4)
    fake_open.assert_called_once_with("/dev/i2c-4", os.O_RDWR)
    assert bus.fd == 99
    bus._fd = CLOSED_FD  # 99 was never a real descriptor


def test_open_missing_node(tmp_path, mocker, adapter):
    close_spy = mocker.spy(os, "close")
    missing = tmp_path / "i2c-99"
    with pytest.raises(OpenError) as exc:
        SMBus(missing)
    assert exc.value.errno == errno.ENOENT
    assert exc.value.path == str(missing)
    assert str(missing) in str(exc.value)
    assert isinstance(exc.value.__cause__, FileNotFoundError)
    assert adapter.calls == []
    close_spy.assert_not_called()


def test_open_permission_denied(device, adapter):
    device.chmod(0o000)
    if os.access(device, os.R_OK | os.W_OK):
        pytest.skip("running as root, permissions are not enforced")
    with pytest.raises(OpenError) as exc:
        SMBus(device)
    assert exc.value.errno == errno.EACCES


def test_funcs_failure_closes_descriptor(device, mocker, adapter):
    adapter.fail[abi.I2C_FUNCS] = errno.ENOTTY
    open_spy = mocker.spy(os, "open")
    close_spy = mocker.spy(os, "close")

    with pytest.raises(IoctlError) as exc:
        SMBus(device)

    fd = open_spy.spy_return
    close_spy.assert_called_once_with(fd)
    assert not _fd_is_open(fd)
    assert exc.value.command == abi.I2C_FUNCS
    assert exc.value.errno == errno.ENOTTY
    assert "I2C_FUNCS" in str(exc.value)


def test_interrupted_funcs_query_closes_descriptor(device, mocker, adapter):
    open_spy = mocker.spy(os, "open")
    adapter.mock.side_effect = KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        SMBus(device)

    assert not _fd_is_open(open_spy.spy_return)


def test_close_poisons_descriptor(device, adapter):
    bus = SMBus(device)
    fd = bus.fd
    bus.close()
    assert bus.closed
    assert bus._fd == CLOSED_FD
    assert not _fd_is_open(fd)
    with pytest.raises(UseAfterCloseError) as exc:
        bus.close()
    assert exc.value.errno == errno.EBADF


def test_use_after_close_fails_fast(device, adapter):
    bus = SMBus(device)
    bus.close()
    n = len(adapter.calls)
    with pytest.raises(UseAfterCloseError):
        bus.dispatch(abi.I2C_SLAVE, 0x48)
    with pytest.raises(UseAfterCloseError):
        bus.funcs
    with pytest.raises(UseAfterCloseError):
        bus.fd
    with pytest.raises(UseAfterCloseError):
        bus.set_address(0x48)
    with pytest.raises(UseAfterCloseError):
        bus.enable_pec(False)
    assert len(adapter.calls) == n


def test_close_error_propagates_after_poisoning(device, mocker, adapter):
    real_close = os.close

    def failing_close(fd):
        real_close(fd)
        raise OSError(errno.EIO, "Input/output error")

    bus = SMBus(device)
    mocker.patch("linux_smbus.bus.smbus.os.close", side_effect=failing_close)
    with pytest.raises(OSError) as exc:
        bus.close()
    assert exc.value.errno == errno.EIO
    assert bus.closed


def test_context_manager_tolerates_explicit_close(device, adapter):
    with SMBus(device) as bus:
        bus.close()
    assert bus.closed


def test_context_manager_closes_on_error(device, adapter):
    with pytest.raises(RuntimeError):
        with SMBus(device) as bus:
            fd = bus.fd
            raise RuntimeError("boom")
    assert bus.closed
    assert not _fd_is_open(fd)


def test_dispatch_passes_argument_block(device, adapter):
    def fill(arg):
        arg.data.contents.byte = 0x5A

    adapter.on[abi.I2C_SMBUS] = fill
    blk = SMBusIoctlData.create(abi.I2C_SMBUS_READ, 0x0F, abi.I2C_SMBUS_BYTE_DATA)
    with SMBus(device) as bus:
        bus.dispatch(abi.I2C_SMBUS, blk)
    assert adapter.calls[-1] == (abi.I2C_SMBUS, blk)
    assert blk.data.contents.byte == 0x5A


def test_dispatch_wraps_error_without_retry(device, adapter):
    adapter.fail[abi.I2C_SMBUS] = errno.EREMOTEIO
    blk = SMBusIoctlData.create()
    with SMBus(device) as bus:
        with pytest.raises(IoctlError) as exc:
            bus.dispatch(abi.I2C_SMBUS, blk)
        assert not bus.closed
    assert exc.value.command == abi.I2C_SMBUS
    assert exc.value.errno == errno.EREMOTEIO
    assert exc.value.path == str(device)
    assert isinstance(exc.value.__cause__, OSError)
    assert [c[0] for c in adapter.calls].count(abi.I2C_SMBUS) == 1


def test_errors_keep_errno_for_branching(device, adapter):
    adapter.fail[abi.I2C_SLAVE] = errno.EBUSY
    with SMBus(device) as bus:
        with pytest.raises(OSError) as exc:
            bus.set_address(0x48)
    assert exc.value.errno == errno.EBUSY


def test_set_address(device, adapter):
    with SMBus(device) as bus:
        bus.set_address(0x48)
        bus.set_address(0x48)
        bus.set_address(0x48, force=True)
        bus.set_address(0x48, force=True)
        assert bus.address == 0x48
        assert bus.force is False
    sent = [(req, arg) for req, arg in adapter.calls if req != abi.I2C_FUNCS]
    assert sent == [
        (abi.I2C_SLAVE, 0x48),
        (abi.I2C_SLAVE_FORCE, 0x48),
    ]


def test_force_is_per_call(device, adapter):
    with SMBus(device) as bus:
        bus.set_address(0x48, force=True)
        bus.set_address(0x49)
        bus.set_address(0x49, force=True)
    sent = [(req, arg) for req, arg in adapter.calls if req != abi.I2C_FUNCS]
    assert sent == [
        (abi.I2C_SLAVE_FORCE, 0x48),
        (abi.I2C_SLAVE, 0x49),
        (abi.I2C_SLAVE_FORCE, 0x49),
    ]


def test_handle_default_force(device, adapter):
    with SMBus(device, force=True) as bus:
        bus.set_address(0x48)
        bus.set_address(0x49, force=False)
        assert bus.force is True
    sent = [(req, arg) for req, arg in adapter.calls if req != abi.I2C_FUNCS]
    assert sent == [(abi.I2C_SLAVE_FORCE, 0x48), (abi.I2C_SLAVE, 0x49)]


def test_set_address_failure_leaves_binding(device, adapter):
    with SMBus(device) as bus:
        bus.set_address(0x20)
        adapter.fail[abi.I2C_SLAVE] = errno.EBUSY
        with pytest.raises(IoctlError):
            bus.set_address(0x21)
        assert bus.address == 0x20


def test_set_address_range(device, adapter):
    with SMBus(device) as bus:
        with pytest.raises(ValueError):
            bus.set_address(0x80)
        with pytest.raises(ValueError):
            bus.set_address(-1)


def test_ten_bit_needs_capability(device, adapter):
    adapter.funcs = I2C_FUNC_I2C
    with SMBus(device) as bus:
        with pytest.raises(UnsupportedFunctionError) as exc:
            bus.set_address(0x150, ten_bit=True)
        assert exc.value.bits == I2C_FUNC_10BIT_ADDR
        assert bus.address is None


def test_ten_bit_address(device, adapter):
    adapter.funcs = I2C_FUNC_I2C | I2C_FUNC_10BIT_ADDR
    with SMBus(device) as bus:
        bus.set_address(0x150, ten_bit=True)
        assert bus.ten_bit
    sent = [(req, arg) for req, arg in adapter.calls if req != abi.I2C_FUNCS]
    assert sent == [(abi.I2C_TENBIT, 1), (abi.I2C_SLAVE, 0x150)]


def test_enable_pec(device, adapter):
    with SMBus(device) as bus:
        bus.enable_pec()
        assert bus.pec
        bus.enable_pec(False)
        assert not bus.pec
    sent = [(req, arg) for req, arg in adapter.calls if req != abi.I2C_FUNCS]
    assert sent == [(abi.I2C_PEC, 1), (abi.I2C_PEC, 0)]


def test_enable_pec_unsupported(device, adapter):
    adapter.funcs = I2C_FUNC_I2C
    with SMBus(device) as bus:
        with pytest.raises(UnsupportedFunctionError):
            bus.enable_pec()
        assert not bus.pec
    assert [c[0] for c in adapter.calls] == [abi.I2C_FUNCS]


def test_repr(device, adapter):
    bus = SMBus(device)
    assert "fd=" in repr(bus)
    bus.close()
    assert "closed" in repr(bus)
