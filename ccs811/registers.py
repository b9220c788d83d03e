# CCS811 register map, status bits and timing constants.
#
# Copyright (C) 2023       Sanaa Hamel
#
# This file may be distributed under the terms of the GNU AGPLv3 license.

import enum
from dataclasses import dataclass

__all__ = [
    'ErrorId',
    'Mode',
    'Status',
    'Timings',
    'TIMINGS_DEFAULT',
]

ADDRESS = 0x5A  # ADDR pin low. (0x5B w/ ADDR high, not supported.)

HW_ID_EXPECTED = 0x81

# Registers/mailboxes, all 1 octet unless stated otherwise.
R_Status = 0x00
R_MeasMode = 0x01
R_AlgResultData = 0x02  # 8 octets
R_RawData = 0x03  # 2 octets
R_EnvData = 0x05  # 4 octets
R_Baseline = 0x11  # 2 octets
R_HwId = 0x20
R_HwVersion = 0x21
R_FwBootVersion = 0x23  # 2 octets
R_FwAppVersion = 0x24  # 2 octets
R_ErrorId = 0xE0
R_AppErase = 0xF1  # 4 octets
R_AppData = 0xF2  # 8 octets per chunk (max)
R_AppVerify = 0xF3  # 0 octets, command
R_AppStart = 0xF4  # 0 octets, command
R_SwReset = 0xFF  # 4 octets

SW_RESET_SEQUENCE = bytes([0x11, 0xE5, 0x72, 0x8A])
APP_ERASE_SEQUENCE = bytes([0xE7, 0xA7, 0xE6, 0x09])

APP_DATA_CHUNK_SIZE = 8

ALG_RESULT_DATA_SIZE = 8
E_CO2_MAX = 8192  # ppm
T_VOC_MAX = 1187  # ppb

MEAS_MODE_DRIVE_MODE_SHIFT = 4


class Mode(enum.Enum):
    # Drive mode. Value is the `DRIVE_MODE` field of `MEAS_MODE`.
    #
    # Datasheet: switching to a faster mode (e.g. SEC60 -> SEC1) requires the
    # chip to sit in IDLE for at least 10 minutes first. Not enforced here.
    IDLE = 0
    SEC1 = 1
    SEC10 = 2
    SEC60 = 3

    @property
    def interval(self) -> float:
        return {Mode.IDLE: 0.0, Mode.SEC1: 1.0, Mode.SEC10: 10.0, Mode.SEC60: 60.0}[
            self
        ]


class Status(enum.IntFlag):
    ERROR = 0b0000_0001
    DATA_READY = 0b0000_1000
    APP_VALID = 0b0001_0000  # else no valid app firmware loaded
    APP_VERIFY = 0b0010_0000  # else no verify completed
    APP_ERASE = 0b0100_0000  # else no erase completed
    APP_MODE = 0b1000_0000  # else boot mode


class ErrorId(enum.IntFlag):
    WRITE_REG_INVALID = 0x01
    READ_REG_INVALID = 0x02
    MEASMODE_INVALID = 0x04
    MAX_RESISTANCE = 0x08
    HEATER_FAULT = 0x10
    HEATER_SUPPLY = 0x20


# Seconds. Several are longer than the datasheet minimum because the datasheet
# values weren't enough in practice (e.g. erase is 300ms in the datasheet, needs 500ms).
@dataclass(frozen=True)
class Timings:
    after_reset: float = 0.002
    after_app_start: float = 0.001
    after_wake: float = 0.000_050
    after_app_erase: float = 0.5
    after_app_data: float = 0.05
    after_app_verify: float = 0.07


TIMINGS_DEFAULT = Timings()
