# Command line tool for inspecting, driving & flashing a CCS811.
#
# Copyright (C) 2023       Sanaa Hamel
#
# This file may be distributed under the terms of the GNU AGPLv3 license.

__doc__ = """Tool for inspecting, driving & flashing CCS811 gas sensors."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typed_argparse as tap

from .codec import status_pprint, version_pprint
from .device import CCS811
from .errors import CCS811Error
from .registers import Mode
from .transport import BusSMBus

__all__ = ['CmdLnArgs', 'EnvReading', 'entry', 'main', 'parse_mode', 'run']

# Representable range of the env data fixed point format.
ENV_VALUE_MAX = 128

READ_INTERVAL_DEFAULT = 1.0  # seconds, used if no `--mode` specified


def parse_mode(raw: str) -> Mode:
    try:
        return Mode[raw.strip().upper()]
    except KeyError:
        raise ValueError(
            f"unknown mode `{raw}`. expected one of: {', '.join(x.name.lower() for x in Mode)}"
        )


@dataclass
class EnvReading:
    humidity: float
    temperature: float

    @staticmethod
    def parse(raw: str) -> 'EnvReading':
        parts = raw.split(",")
        if len(parts) != 2:
            raise ValueError(f"expected `HUMIDITY,TEMPERATURE`, got `{raw}`")

        x = EnvReading(float(parts[0]), float(parts[1]))
        for name, value in (("humidity", x.humidity), ("temperature", x.temperature)):
            if not (0 <= value < ENV_VALUE_MAX):
                raise ValueError(f"{name} must be in [0, {ENV_VALUE_MAX}), got {value}")

        return x


class CmdLnArgs(tap.TypedArgs):
    bus: int = tap.arg(help="I2C bus number (e.g. 1 for `/dev/i2c-1`)", default=1)
    info: bool = tap.arg(help="print chip versions, status & baseline")
    mode: Optional[str] = tap.arg(help="drive mode: idle, sec1, sec10, sec60")
    env: Optional[EnvReading] = tap.arg(
        help="environment data as `HUMIDITY,TEMPERATURE` (e.g. `48.5,23.3`)",
        type=EnvReading.parse,
    )
    baseline: Optional[int] = tap.arg(
        help="restore a baseline (e.g. `0x847B`)", type=lambda x: int(x, 0)
    )
    read: int = tap.arg(help="number of measurements to read", default=0)
    interval: Optional[float] = tap.arg(
        help="seconds between reads (default: mode's interval)"
    )
    json: bool = tap.arg(help="print measurements as JSON")
    flash: Optional[Path] = tap.arg(help="filepath of firmware binary to flash")
    unattended: bool = tap.arg(help="do not ask user for input", default=False)
    verbose: bool = tap.arg(help="enable debug logging")

    def validate(self):
        ok = True

        if self.mode is not None:
            try:
                parse_mode(self.mode)
            except ValueError as e:
                logging.error(e)
                ok = False

        if self.read < 0:
            logging.error("`--read` must not be negative")
            ok = False

        if self.interval is not None and self.interval < 0:
            logging.error("`--interval` must not be negative")
            ok = False

        if self.baseline is not None and not (0 <= self.baseline <= 0xFFFF):
            logging.error("`--baseline` must fit in 16 bits")
            ok = False

        return ok


def input_yes_no(args: CmdLnArgs, default: bool, msg: str) -> bool:
    if args.unattended:
        return default

    while True:
        response = input(f"{msg} ({'Y/n' if default else 'y/N'})").lower().strip()
        if response == "y":
            return True
        if response == "n":
            return False
        if response == "":
            return default


def _flash(args: CmdLnArgs, device: CCS811) -> bool:
    assert args.flash is not None

    try:
        image = args.flash.read_bytes()
    except OSError as e:
        logging.error(f"unable to load firmware `{args.flash}`: {e}")
        return False

    print(f"firmware has size of {len(image)} bytes")
    if not input_yes_no(
        args,
        True,
        "Flashing erases the current application firmware.\n"
        "If it fails the boot loader remains, so flashing can be re-attempted.\n"
        "Continue?",
    ):
        return False

    def progress(written: int, total: int):
        print(f"flashing {written} of {total}", end="\r", flush=True)

    device.flash(image, progress)
    print("\nflashed")
    return True


def _info(device: CCS811):
    print(f"hardware version   : {version_pprint(bytes([device.hardware_version()]))}")
    print(f"boot loader version: {version_pprint(device.bootloader_version())}")
    print(f"application version: {version_pprint(device.application_version())}")
    print(f"status             : {status_pprint(device.status())}")
    print(f"baseline           : 0x{device.get_baseline():04X}")


def run(args: CmdLnArgs, device: CCS811) -> int:
    mode = parse_mode(args.mode) if args.mode is not None else None

    try:
        if args.flash is not None and not _flash(args, device):
            return 1

        if not (
            args.info
            or mode is not None
            or args.env is not None
            or args.baseline is not None
            or 0 < args.read
        ):
            return 0

        device.begin()

        if args.baseline is not None:
            device.set_baseline(args.baseline)

        if args.env is not None:
            device.set_env_data(args.env.humidity, args.env.temperature)

        if mode is not None:
            device.start(mode)

        if args.info:
            _info(device)

        interval = args.interval
        if interval is None:
            interval = mode.interval if mode is not None else READ_INTERVAL_DEFAULT

        for i in range(args.read):
            if i != 0 or mode is not None:
                time.sleep(interval)

            x = device.read()
            if args.json:
                print(x.to_json())
            else:
                print(f"eCO2: {x.e_co2:4}ppm  tVOC: {x.t_voc:4}ppb  raw: {x.raw.hex()}")
    except CCS811Error as e:
        logging.error(e)
        return 1

    return 0


def main(args: CmdLnArgs) -> int:
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.validate():
        return 1

    try:
        bus = BusSMBus.open(args.bus)
    except OSError as e:
        logging.error(f"unable to open I2C bus {args.bus}: {e}")
        return 1

    with bus:
        return run(args, CCS811(bus))


def entry():
    def go(args: CmdLnArgs):
        exit(main(args))

    tap.Parser(CmdLnArgs).bind(go).run()


if __name__ == "__main__":
    entry()
