import unittest
from unittest import mock

from fake_bus import FakeBus

from ccs811.device import CCS811
from ccs811.errors import FlashError, FlashStage, StatusMismatch, TransportError
from ccs811.registers import (
    ADDRESS,
    APP_ERASE_SEQUENCE,
    TIMINGS_DEFAULT,
    R_AppData,
    R_AppErase,
    R_AppVerify,
    R_Status,
    R_SwReset,
)

IMAGE = bytes(range(20))

# valid-app -> erased -> erased+verified+valid -> valid-app
STATUS_FLASH_OK = [bytes([0x10]), bytes([0x40]), bytes([0x70]), bytes([0x10])]


class FlashTestCase(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("time.sleep")
        self.sleep = patcher.start()
        self.addCleanup(patcher.stop)

        self.bus = FakeBus({R_Status: STATUS_FLASH_OK})
        self.device = CCS811(self.bus)

    def assertFlashFails(self, stage: FlashStage) -> FlashError:
        with self.assertRaises(FlashError) as ctx:
            self.device.flash(IMAGE)

        self.assertEqual(ctx.exception.stage, stage)
        self.assertIn(stage.value, str(ctx.exception))
        return ctx.exception


class FlashSequenceTests(FlashTestCase):
    def test_sequence(self) -> None:
        self.device.flash(IMAGE)

        self.assertEqual(
            self.bus.kinds(),
            [
                ("address", ADDRESS),
                ("write", R_SwReset),
                ("read", R_Status),
                ("write", R_AppErase),
                ("read", R_Status),
                ("write", R_AppData),
                ("write", R_AppData),
                ("write", R_AppData),
                ("write", R_AppVerify),
                ("read", R_Status),
                ("write", R_SwReset),
                ("read", R_Status),
            ],
        )
        self.assertEqual(self.bus.writes(R_AppErase), [APP_ERASE_SEQUENCE])
        self.assertEqual(self.bus.writes(R_AppVerify), [b''])

    def test_chunks_in_order(self) -> None:
        self.device.flash(IMAGE)

        chunks = self.bus.writes(R_AppData)
        self.assertEqual([len(x) for x in chunks], [8, 8, 4])
        self.assertEqual(b''.join(chunks), IMAGE)

    def test_exact_multiple_of_chunk_size(self) -> None:
        self.device.flash(bytes(16))
        self.assertEqual([len(x) for x in self.bus.writes(R_AppData)], [8, 8])

    def test_waits(self) -> None:
        self.device.flash(IMAGE)

        t = TIMINGS_DEFAULT
        self.assertEqual(
            self.sleep.call_args_list,
            [
                mock.call(t.after_reset),
                mock.call(t.after_app_erase),
                mock.call(t.after_app_data),
                mock.call(t.after_app_verify),
                mock.call(t.after_reset),
            ],
        )

    def test_progress(self) -> None:
        progress = mock.Mock()
        self.device.flash(IMAGE, progress)
        self.assertEqual(
            progress.call_args_list,
            [mock.call(8, 20), mock.call(16, 20), mock.call(20, 20)],
        )

    def test_empty_image_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.device.flash(b'')
        self.assertEqual(self.bus.ops, [])


class FlashCheckpointTests(FlashTestCase):
    def test_stage_labels_are_distinct(self) -> None:
        self.assertEqual(len({x.value for x in FlashStage}), len(FlashStage))

    def test_reset_fails(self) -> None:
        self.bus.fail = lambda kind, reg, _: reg == R_SwReset

        e = self.assertFlashFails(FlashStage.RESET)
        self.assertIsInstance(e.cause, TransportError)

    def test_not_valid(self) -> None:
        self.bus.set(R_Status, bytes([0x00]))

        e = self.assertFlashFails(FlashStage.NOT_VALID)
        self.assertIsInstance(e.cause, StatusMismatch)
        self.assertEqual(self.bus.writes(R_AppErase), [])

    def test_erase_command_fails(self) -> None:
        self.bus.fail = lambda kind, reg, _: reg == R_AppErase
        self.assertFlashFails(FlashStage.ERASE)

    def test_not_erased_never_writes_chunks(self) -> None:
        self.bus.set(R_Status, [bytes([0x10]), bytes([0x10])])

        self.assertFlashFails(FlashStage.NOT_ERASED)
        self.assertEqual(self.bus.writes(R_AppData), [])
        self.assertEqual(self.bus.writes(R_AppVerify), [])

    def test_chunk_write_aborts(self) -> None:
        writes = []

        def fail(kind: str, reg: int, data: bytes):
            if reg != R_AppData:
                return False
            writes.append(data)
            return len(writes) == 2

        self.bus.fail = fail

        e = self.assertFlashFails(FlashStage.CHUNK_WRITE)
        self.assertIsInstance(e.cause, TransportError)
        self.assertIn("@ 8", e.cause.step)
        self.assertEqual(len(self.bus.writes(R_AppData)), 2)
        self.assertEqual(self.bus.writes(R_AppVerify), [])

    def test_verify_command_fails(self) -> None:
        self.bus.fail = lambda kind, reg, _: reg == R_AppVerify
        self.assertFlashFails(FlashStage.VERIFY)

    def test_not_verified(self) -> None:
        # erased & verified but not valid
        self.bus.set(R_Status, [bytes([0x10]), bytes([0x40]), bytes([0x60])])

        e = self.assertFlashFails(FlashStage.NOT_VERIFIED)
        self.assertEqual(e.cause.actual, 0x60)
        self.assertEqual(len(self.bus.writes(R_SwReset)), 1)

    def test_post_reset_fails(self) -> None:
        resets = []

        def fail(kind: str, reg: int, data: bytes):
            if reg != R_SwReset:
                return False
            resets.append(data)
            return len(resets) == 2

        self.bus.fail = fail
        self.assertFlashFails(FlashStage.POST_RESET)

    def test_post_reset_invalid(self) -> None:
        self.bus.set(
            R_Status, [bytes([0x10]), bytes([0x40]), bytes([0x70]), bytes([0x80])]
        )
        self.assertFlashFails(FlashStage.POST_RESET_INVALID)


if __name__ == "__main__":
    unittest.main()
