import json
import unittest

from ccs811.codec import (
    ALG_RESULT_FORMAT,
    ENV_DATA_FORMAT,
    EnvData,
    Measurement,
    fixed_point_decode,
    fixed_point_encode,
    raw_data_parse,
    status_pprint,
    version_pprint,
)
from ccs811.registers import ErrorId, Status


def split(raw: bytes):
    return raw[0] >> 1, ((raw[0] & 1) << 8) | raw[1]


class FixedPointTests(unittest.TestCase):
    def test_half(self) -> None:
        self.assertEqual(fixed_point_encode(48.5), bytes([0x60, 0xFF]))

    def test_fraction_high_bit_spills_into_high_byte(self) -> None:
        self.assertEqual(fixed_point_encode(127.75), bytes([0xFF, 0x7F]))

    def test_typical_temperature(self) -> None:
        self.assertEqual(fixed_point_encode(23.3), bytes([0x2E, 0x98]))

    def test_exact_integer_has_zero_fraction(self) -> None:
        self.assertEqual(fixed_point_encode(25.0), bytes([0x32, 0x00]))
        self.assertEqual(fixed_point_encode(0.0), bytes([0x00, 0x00]))

    def test_base_recovered(self) -> None:
        for base in range(128):
            for frac in (0.0, 0.1, 0.25, 0.5, 0.9):
                hi_base, fraction = split(fixed_point_encode(base + frac))
                self.assertEqual(hi_base, base)
                self.assertTrue(0 <= fraction <= 511)

    def test_fraction_never_exceeds_nine_bits(self) -> None:
        for frac in (511 / 512, 511.5 / 512, 0.999999, 1 - 1e-12):
            _, fraction = split(fixed_point_encode(100 + frac))
            self.assertLessEqual(fraction, 511)
            self.assertGreaterEqual(fraction, 509)

    def test_decode(self) -> None:
        self.assertEqual(fixed_point_decode(bytes([0x60, 0xFF])), 48 + 255 / 512)
        self.assertEqual(fixed_point_decode(bytes([0x32, 0x00])), 25.0)
        self.assertAlmostEqual(
            fixed_point_decode(fixed_point_encode(23.3)), 23.3, delta=2 / 512
        )


class FormatTests(unittest.TestCase):
    def test_env_data(self) -> None:
        raw = ENV_DATA_FORMAT.build(EnvData(humidity=48.5, temperature=23.3))
        self.assertEqual(raw, bytes([0x60, 0xFF, 0x2E, 0x98]))

        parsed = ENV_DATA_FORMAT.parse(raw)
        self.assertEqual(parsed.humidity, 48 + 255 / 512)

    def test_algorithm_result(self) -> None:
        x = ALG_RESULT_FORMAT.parse(bytes([0x01, 0x94, 0x00, 0x32, 0x98, 0x00, 0x0C, 0x1F]))
        self.assertEqual(x.e_co2, 404)
        self.assertEqual(x.t_voc, 50)
        self.assertEqual(x.status, 0x98)
        self.assertEqual(x.error_id, 0)
        self.assertEqual(x.raw_data, 0x0C1F)

    def test_raw_data(self) -> None:
        x = raw_data_parse(bytes([0x0C, 0x1F]))
        self.assertEqual(x.current, 3)
        self.assertEqual(x.adc, 31)
        self.assertAlmostEqual(x.voltage, 31 * 1.65 / 1023)


class MeasurementTests(unittest.TestCase):
    RAW = bytes([0x01, 0x94, 0x00, 0x32, 0x98, 0x04, 0x00, 0x00])

    def test_embedded_status_and_error(self) -> None:
        x = Measurement(e_co2=404, t_voc=50, raw=self.RAW)
        self.assertIn(Status.DATA_READY, x.status)
        self.assertIn(Status.APP_MODE, x.status)
        self.assertEqual(x.error_id, ErrorId.MEASMODE_INVALID)

    def test_json(self) -> None:
        x = Measurement(e_co2=404, t_voc=50, raw=self.RAW)
        self.assertEqual(
            json.loads(x.to_json()),
            {"e_co2": 404, "t_voc": 50, "raw": "0194003298040000"},
        )
        self.assertEqual(Measurement.from_json(x.to_json()), x)


class PprintTests(unittest.TestCase):
    def test_status(self) -> None:
        self.assertEqual(status_pprint(0x90), "0b10010000 (APP_VALID, APP_MODE)")
        self.assertEqual(status_pprint(0x00), "0b00000000 (BOOT)")

    def test_version(self) -> None:
        self.assertEqual(version_pprint(bytes([0x12])), "0x12")
        self.assertEqual(version_pprint(bytes([0x20, 0x01])), "2.0.1")


if __name__ == "__main__":
    unittest.main()
