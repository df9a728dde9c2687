from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Union

import yaml

from ..bus.errors import SMBusError
from ..bus.smbus import SMBus
from ..config import load_config

log = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s] %(message)s"


def _bus_arg(s: str) -> Union[int, str]:
    # "1" -> bus number, anything else is a device path
    return int(s) if s.isdigit() else s


def probe(device: Union[int, str], out=None) -> bool:
    """Print one adapter's functionality list; False if it could not be opened."""
    out = out or sys.stdout
    try:
        with SMBus(device) as bus:
            funcs = bus.funcs
            print(f"{bus.path}: {funcs}", file=out)
            for name in funcs.describe():
                print(f"  {name}", file=out)
    except (SMBusError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return False
    return True


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="List the functionality of i2c-dev adapters.")
    ap.add_argument("bus", nargs="*", type=_bus_arg, help="bus number or /dev/i2c-N path")
    ap.add_argument("--config", type=str, default=None, help="YAML file with a buses block")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    devices: List[Union[int, str]] = list(args.bus)
    level = logging.WARNING
    if args.config:
        try:
            cfg = load_config(args.config)
            level = cfg.logging.level_no
        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"error: {args.config}: {e}", file=sys.stderr)
            return 1
        devices += [b.device for b in cfg.buses.values()]
    if args.verbose:
        level = logging.DEBUG
    logging.basicConfig(format=LOG_FORMAT, level=level)

    if not devices:
        ap.error("no bus given (pass a bus number/path or --config)")

    ok = True
    for dev in devices:
        ok = probe(dev) and ok
    log.debug("probed %d bus(es), ok=%s", len(devices), ok)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
