# Encodings for CCS811 register contents.
#
# Copyright (C) 2023       Sanaa Hamel
#
# This file may be distributed under the terms of the GNU AGPLv3 license.

import math
from dataclasses import dataclass, field
from typing import Any

import construct as cs
from construct_typed import DataclassMixin, DataclassStruct, csfield
from construct_typed.generic_wrapper import Adapter as CsAdapter
from dataclasses_json import DataClassJsonMixin, config

from .registers import ErrorId, Status

__all__ = [
    'ALG_RESULT_FORMAT',
    'ENV_DATA_FORMAT',
    'AlgorithmResult',
    'EnvData',
    'Measurement',
    'RawData',
    'fixed_point_decode',
    'fixed_point_encode',
    'raw_data_parse',
    'status_pprint',
    'version_pprint',
]

FIXED_POINT_FRACTION_BITS = 9
FIXED_POINT_FRACTION_MAX = (1 << FIXED_POINT_FRACTION_BITS) - 1
FIXED_POINT_BASE_MASK = 0x7F


# Environment data format (humidity & temperature share it):
#   Type:   u2 BE
#                       Integer part (7 bits)
#                      /        Fraction, 1/512ths (9 bits)
#                     /        /
#                   0bIIII'IIIF'FFFF'FFFF
#
# Callers must keep `0 <= value < 128`; anything else silently wraps.
def fixed_point_encode(value: float) -> bytes:
    base = math.floor(value)
    # `- 1` is inherited from the established encoding, so 48.5 -> 0x60FF.
    # A negative fraction (exact integer input) saturates to 0.
    fraction = int((value - base) * (FIXED_POINT_FRACTION_MAX + 1) - 1)
    fraction = min(max(fraction, 0), FIXED_POINT_FRACTION_MAX)

    hi = ((base & FIXED_POINT_BASE_MASK) << 1) | ((fraction & 0x100) >> 8)
    lo = fraction & 0xFF
    return bytes([hi, lo])


def fixed_point_decode(raw: bytes) -> float:
    assert len(raw) == 2
    base = raw[0] >> 1
    fraction = ((raw[0] & 0x01) << 8) | raw[1]
    return base + fraction / (FIXED_POINT_FRACTION_MAX + 1)


class FixedPoint9(CsAdapter[int, int, float, float]):
    def __init__(self):
        super().__init__(cs.Int16ub)

    def _decode(self, obj: int, context: "cs.Context", path: Any):  # type: ignore
        return fixed_point_decode(obj.to_bytes(2, 'big'))

    def _encode(self, obj: float, context: "cs.Context", path: Any):
        return int.from_bytes(fixed_point_encode(obj), 'big')


@dataclass
class EnvData(DataclassMixin):
    humidity: float = csfield(FixedPoint9())  # %RH
    temperature: float = csfield(FixedPoint9())  # celsius


ENV_DATA_FORMAT = DataclassStruct(EnvData)


@dataclass
class AlgorithmResult(DataclassMixin):
    e_co2: int = csfield(cs.Int16ub)  # ppm
    t_voc: int = csfield(cs.Int16ub)  # ppb
    status: int = csfield(cs.Int8ub)
    error_id: int = csfield(cs.Int8ub)
    raw_data: int = csfield(cs.Int16ub)


ALG_RESULT_FORMAT = DataclassStruct(AlgorithmResult)


# Upper 6 bits: current through the sensor (uA)
# Lower 10 bits: voltage across the sensor, ADC counts (1.65V == 1023)
RAW_DATA_FORMAT = cs.BitStruct(
    "current" / cs.BitsInteger(6),
    "adc" / cs.BitsInteger(10),
)


@dataclass(frozen=True)
class RawData:
    current: int  # uA
    adc: int

    @property
    def voltage(self) -> float:
        return self.adc * 1.65 / 1023


def raw_data_parse(raw: bytes) -> RawData:
    x = RAW_DATA_FORMAT.parse(raw)
    return RawData(current=x.current, adc=x.adc)


@dataclass(frozen=True)
class Measurement(DataClassJsonMixin):
    e_co2: int  # ppm
    t_voc: int  # ppb
    # full `ALG_RESULT_DATA` block, kept for diagnostics
    raw: bytes = field(metadata=config(encoder=bytes.hex, decoder=bytes.fromhex))

    @property
    def status(self) -> Status:
        return Status(self.raw[4])

    @property
    def error_id(self) -> ErrorId:
        return ErrorId(self.raw[5])


def status_pprint(status: int) -> str:
    status = int(status)
    assert 0 <= status <= 0xFF
    names = [str(x.name) for x in Status if status & x]
    return f"0b{status:08b} ({', '.join(names) if names else 'BOOT'})"


# Versions are nibble packed: `0xMm 0xTT` -> `M.m.TT`
def version_pprint(raw: bytes) -> str:
    if len(raw) == 1:
        return f"0x{raw[0]:02X}"

    assert len(raw) == 2
    return f"{raw[0] >> 4}.{raw[0] & 0x0F}.{raw[1]}"
