# CCS811 error taxonomy.
#
# Copyright (C) 2023       Sanaa Hamel
#
# This file may be distributed under the terms of the GNU AGPLv3 license.

import enum

__all__ = [
    'CCS811Error',
    'ChipReportedError',
    'FlashError',
    'FlashStage',
    'HardwareIdMismatch',
    'ProtocolMismatch',
    'ReadingOutOfRange',
    'StatusMismatch',
    'TransportError',
]


class CCS811Error(Exception):
    pass


class TransportError(CCS811Error):
    def __init__(self, step: str, cause: Exception):
        super().__init__(f"{step}: {cause}")
        self.step = step
        self.cause = cause


class ProtocolMismatch(CCS811Error):
    def __init__(self, msg: str, expected: int, actual: int):
        super().__init__(msg)
        self.expected = expected
        self.actual = actual


class HardwareIdMismatch(ProtocolMismatch):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"hardware ID is not 0x{expected:02X} but 0x{actual:02X}", expected, actual
        )


class StatusMismatch(ProtocolMismatch):
    # `expected` is a mask of bits that must all be set
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"chip status is not 0b{expected:08b} but 0b{actual:08b}", expected, actual
        )


class ChipReportedError(CCS811Error):
    def __init__(self, error_id: int, raw: bytes):
        super().__init__(f"chip reported error 0x{error_id:02X} (raw {raw.hex()})")
        self.error_id = error_id
        self.raw = raw


class ReadingOutOfRange(CCS811Error):
    def __init__(self, e_co2: int, t_voc: int, raw: bytes):
        super().__init__(f"reading is above max: {t_voc}ppb, {e_co2}ppm")
        self.e_co2 = e_co2
        self.t_voc = t_voc
        self.raw = raw


class FlashStage(enum.Enum):
    RESET = "reset"
    NOT_VALID = "not valid"
    ERASE = "erase"
    NOT_ERASED = "not erased"
    CHUNK_WRITE = "chunk write"
    VERIFY = "verify"
    NOT_VERIFIED = "not verified"
    POST_RESET = "post-flash reset"
    POST_RESET_INVALID = "unexpected status after flashing"


class FlashError(CCS811Error):
    def __init__(self, stage: FlashStage, cause: Exception):
        super().__init__(f"flash failed at `{stage.value}`: {cause}")
        self.stage = stage
        self.cause = cause
