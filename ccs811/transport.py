# Bus & wake-pin seams for the CCS811 driver.
#
# Copyright (C) 2023       Sanaa Hamel
#
# This file may be distributed under the terms of the GNU AGPLv3 license.

import time
from abc import abstractmethod
from dataclasses import dataclass
from typing import Optional

from smbus2 import SMBus
from typing_extensions import override

__all__ = [
    'Bus',
    'BusSMBus',
    'Pin',
    'WakeLine',
    'WakeLineNone',
    'WakeLinePin',
]


class Bus:
    """Register oriented view of an I2C bus.

    Implementations report failed transfers by raising `OSError`, which is what
    the Linux I2C device interface does.
    """

    @abstractmethod
    def set_address(self, address: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def read(self, register: int, length: int) -> bytes:
        raise NotImplementedError

    # An empty `data` is a bare command (register write w/o payload).
    @abstractmethod
    def write(self, register: int, data: bytes = b'') -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class BusSMBus(Bus):
    def __init__(self, bus: SMBus):
        self.bus = bus
        self.address: Optional[int] = None

    @staticmethod
    def open(bus: int) -> 'BusSMBus':
        return BusSMBus(SMBus(bus))

    @override
    def set_address(self, address: int) -> None:
        assert 0 <= address <= 0x7F
        self.address = address

    @override
    def read(self, register: int, length: int) -> bytes:
        assert self.address is not None, "no address selected"
        if length == 1:
            return bytes([self.bus.read_byte_data(self.address, register)])

        return bytes(self.bus.read_i2c_block_data(self.address, register, length))

    @override
    def write(self, register: int, data: bytes = b'') -> None:
        assert self.address is not None, "no address selected"
        if not data:
            self.bus.write_byte(self.address, register)
        else:
            self.bus.write_i2c_block_data(self.address, register, list(data))

    @override
    def close(self) -> None:
        self.bus.close()


class Pin:
    """Digital output line. Implementations raise `OSError` on failure."""

    @abstractmethod
    def set_output(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_high(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_low(self) -> None:
        raise NotImplementedError


# nWAKE is active low. Driving it high lets the chip idle in low power mode.
class WakeLine:
    @abstractmethod
    def awake(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def sleep(self) -> None:
        raise NotImplementedError

    @staticmethod
    def of(pin: Optional[Pin], delay: float) -> 'WakeLine':
        if pin is None:
            return WakeLineNone()

        pin.set_output()
        return WakeLinePin(pin, delay)


# No wake hardware, chip is tied awake.
class WakeLineNone(WakeLine):
    @override
    def awake(self) -> None:
        pass

    @override
    def sleep(self) -> None:
        pass


@dataclass(frozen=True)
class WakeLinePin(WakeLine):
    pin: Pin
    delay: float  # seconds, oscillator settling after wake

    @override
    def awake(self) -> None:
        self.pin.set_low()
        time.sleep(self.delay)

    @override
    def sleep(self) -> None:
        self.pin.set_high()
