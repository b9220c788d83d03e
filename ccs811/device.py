# CCS811 device controller & firmware flasher.
#
# Copyright (C) 2023       Sanaa Hamel
#
# This file may be distributed under the terms of the GNU AGPLv3 license.

import datetime
import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from .codec import (
    ALG_RESULT_FORMAT,
    ENV_DATA_FORMAT,
    EnvData,
    Measurement,
    RawData,
    raw_data_parse,
)
from .errors import (
    CCS811Error,
    ChipReportedError,
    FlashError,
    FlashStage,
    HardwareIdMismatch,
    ReadingOutOfRange,
    StatusMismatch,
    TransportError,
)
from .registers import (
    ADDRESS,
    ALG_RESULT_DATA_SIZE,
    APP_DATA_CHUNK_SIZE,
    APP_ERASE_SEQUENCE,
    E_CO2_MAX,
    HW_ID_EXPECTED,
    MEAS_MODE_DRIVE_MODE_SHIFT,
    SW_RESET_SEQUENCE,
    T_VOC_MAX,
    TIMINGS_DEFAULT,
    ErrorId,
    Mode,
    R_AlgResultData,
    R_AppData,
    R_AppErase,
    R_AppStart,
    R_AppVerify,
    R_Baseline,
    R_EnvData,
    R_ErrorId,
    R_FwAppVersion,
    R_FwBootVersion,
    R_HwId,
    R_HwVersion,
    R_MeasMode,
    R_RawData,
    R_Status,
    R_SwReset,
    Status,
    Timings,
)
from .transport import Bus, Pin, WakeLine
from .utilities import LogPrefixed, chunked

__all__ = ['CCS811', 'FlashProgress']

LOG = LogPrefixed(
    logging.getLogger(__name__),
    lambda str: f"[{datetime.datetime.now().strftime('%H:%M:%S:%f')}] {str}",
)

# (bytes-written, bytes-total) -> None
FlashProgress = Callable[[int, int], None]


@contextmanager
def _flash_stage(stage: FlashStage) -> Iterator[None]:
    try:
        yield
    except FlashError:
        raise
    except CCS811Error as e:
        raise FlashError(stage, e) from e


class CCS811:
    """Driver for an AMS/ScioSense CCS811 on an I2C bus.

    Lifecycle: `begin()` resets the chip & starts the application firmware,
    `start(mode)` selects a drive mode, then `read()` periodically.

    Every operation is a single best-effort attempt. Failures raise a
    `CCS811Error` describing the step that broke; nothing is retried.

    Not thread safe. The instance assumes exclusive use of the bus address.
    """

    def __init__(
        self,
        bus: Bus,
        wake: Optional[Pin] = None,
        timings: Timings = TIMINGS_DEFAULT,
        name: str = "ccs811",
    ):
        self.bus = bus
        self.timings = timings
        self.log = LogPrefixed(LOG, lambda x: f"{name}@0x{ADDRESS:02X} - {x}")
        with self._transport("configure wake pin"):
            self.wake = WakeLine.of(wake, timings.after_wake)

    @contextmanager
    def _transport(self, step: str) -> Iterator[None]:
        try:
            yield
        except OSError as e:
            raise TransportError(step, e) from e

    def _read(self, step: str, register: int, length: int) -> bytes:
        with self._transport(step):
            raw = self.bus.read(register, length)

        self.log.debug(f"read 0x{register:02X} -> {raw.hex()}")
        if len(raw) != length:
            raise TransportError(step, OSError(f"short read {len(raw)}/{length}"))
        return raw

    def _write(self, step: str, register: int, data: bytes = b'') -> None:
        self.log.debug(f"write 0x{register:02X} <- {data.hex()}")
        with self._transport(step):
            self.bus.write(register, data)

    @contextmanager
    def _awake(self) -> Iterator[None]:
        with self._transport("wake chip"):
            self.wake.awake()
        try:
            yield
        finally:
            with self._transport("sleep chip"):
                self.wake.sleep()

    def _select_address(self) -> None:
        with self._transport("set slave address"):
            self.bus.set_address(ADDRESS)

    def _reset(self) -> None:
        self._write("software reset", R_SwReset, SW_RESET_SEQUENCE)
        time.sleep(self.timings.after_reset)

    def _check_hw_id(self) -> None:
        hw_id = self._read("read hardware ID", R_HwId, 1)[0]
        if hw_id != HW_ID_EXPECTED:
            raise HardwareIdMismatch(HW_ID_EXPECTED, hw_id)

    def _app_start(self) -> None:
        self._write("start application", R_AppStart)
        time.sleep(self.timings.after_app_start)

    def _check_status(self, required: Status) -> None:
        status = self.status()
        if (status & required) != required:
            raise StatusMismatch(int(required), int(status))

    def begin(self) -> None:
        """Reset the chip and boot into the application firmware.

        Sequence: select address -> wake -> reset -> check HW ID -> app start ->
        check status -> release wake.

        Any in-progress measurement is discarded. On failure the wake line is
        left asserted.
        """
        self._select_address()

        with self._transport("wake chip"):
            self.wake.awake()

        self._reset()
        self._check_hw_id()
        self._app_start()
        self._check_status(Status.APP_MODE)

        with self._transport("sleep chip"):
            self.wake.sleep()

        self.log.info("application started")

    def start(self, mode: Mode) -> None:
        """Select the drive mode.

        First data is available one full interval after this returns (e.g. 60s
        for `Mode.SEC60`). Moving to a faster mode needs >= 10 min in
        `Mode.IDLE` beforehand. The driver does not check this.
        """
        with self._awake():
            self._write(
                "set mode", R_MeasMode, bytes([mode.value << MEAS_MODE_DRIVE_MODE_SHIFT])
            )

        self.log.info(f"mode set to {mode.name}")

    def status(self) -> Status:
        return Status(self._read("read chip status", R_Status, 1)[0])

    def data_ready(self) -> bool:
        return Status.DATA_READY in self.status()

    def error_id(self) -> ErrorId:
        return ErrorId(self._read("read error ID", R_ErrorId, 1)[0])

    # Something like 0x1X
    def hardware_version(self) -> int:
        return self._read("read hardware version", R_HwVersion, 1)[0]

    # Something like 0x10 0x00
    def bootloader_version(self) -> bytes:
        return self._read("read boot loader version", R_FwBootVersion, 2)

    # Something like 0x10 0x00 or higher (2.0.0 after flashing newer firmware)
    def application_version(self) -> bytes:
        return self._read("read application version", R_FwAppVersion, 2)

    # Baseline is an opaque word, transferred as an SMBus word (little endian).
    def get_baseline(self) -> int:
        raw = self._read("read baseline", R_Baseline, 2)
        return int.from_bytes(raw, 'little')

    def set_baseline(self, baseline: int) -> None:
        """Override the baseline.

        The chip corrects its baseline automatically, this is only needed to
        restore a previously saved value (e.g. after power loss).
        """
        if not (0 <= baseline <= 0xFFFF):
            raise ValueError(f"baseline must fit in 16 bits, got {baseline}")

        self._write("set baseline", R_Baseline, baseline.to_bytes(2, 'little'))

    def set_env_data(self, humidity: float, temperature: float) -> None:
        """Feed externally measured humidity (%RH) & temperature (C) to the chip.

        Both must be in `[0, 128)`. Out of range values wrap silently.
        """
        data = ENV_DATA_FORMAT.build(EnvData(humidity=humidity, temperature=temperature))
        self._write("write env data", R_EnvData, data)

    def raw_data(self) -> RawData:
        return raw_data_parse(self._read("read raw data", R_RawData, 2))

    def read(self) -> Measurement:
        """Read the latest eCO2 & tVOC sample.

        Raises `ChipReportedError` if the chip flagged an error and
        `ReadingOutOfRange` if the values exceed what the chip can report.
        """
        with self._awake():
            raw = self._read("read chip data", R_AlgResultData, ALG_RESULT_DATA_SIZE)

        result = ALG_RESULT_FORMAT.parse(raw)
        if result.error_id != 0:
            raise ChipReportedError(result.error_id, raw)

        if E_CO2_MAX < result.e_co2 or T_VOC_MAX < result.t_voc:
            raise ReadingOutOfRange(result.e_co2, result.t_voc, raw)

        return Measurement(e_co2=result.e_co2, t_voc=result.t_voc, raw=raw)

    def flash(self, image: bytes, progress: Optional[FlashProgress] = None) -> None:
        """Replace the application firmware with `image`.

        Not resumable. A failure mid-way leaves the chip erased or with a partial
        image, but the boot loader survives so the whole procedure can be run
        again from the start.

        Raises `FlashError`; `FlashError.stage` identifies the failed step.
        """
        if not image:
            raise ValueError("firmware image is empty")

        self.log.info(f"flashing {len(image)} bytes")

        with _flash_stage(FlashStage.RESET):
            self._select_address()
            self._reset()

        with _flash_stage(FlashStage.NOT_VALID):
            self._check_status(Status.APP_VALID)

        with _flash_stage(FlashStage.ERASE):
            self._write("erase application", R_AppErase, APP_ERASE_SEQUENCE)
            time.sleep(self.timings.after_app_erase)

        with _flash_stage(FlashStage.NOT_ERASED):
            self._check_status(Status.APP_ERASE)

        self.log.info("application erased")

        written = 0
        for chunk in chunked(image, APP_DATA_CHUNK_SIZE):
            with _flash_stage(FlashStage.CHUNK_WRITE):
                self._write(f"write firmware @ {written}", R_AppData, bytes(chunk))

            written += len(chunk)
            self.log.debug(f"flashed {written} of {len(image)}")
            if progress is not None:
                progress(written, len(image))

        with _flash_stage(FlashStage.VERIFY):
            time.sleep(self.timings.after_app_data)
            self._write("verify application", R_AppVerify)
            time.sleep(self.timings.after_app_verify)

        with _flash_stage(FlashStage.NOT_VERIFIED):
            self._check_status(Status.APP_ERASE | Status.APP_VERIFY | Status.APP_VALID)

        with _flash_stage(FlashStage.POST_RESET):
            self._reset()

        with _flash_stage(FlashStage.POST_RESET_INVALID):
            self._check_status(Status.APP_VALID)

        self.log.info("flash complete")
