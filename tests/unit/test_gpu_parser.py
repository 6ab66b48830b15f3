import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from powermonitor_telemetry.parsers import parse_gpu_metrics

SAMPLE = (ROOT / "tests" / "fixtures" / "powermetrics_m3.txt").read_text(encoding="utf-8")


class GpuParserTests(unittest.TestCase):
    def test_power_converted_to_watts(self):
        reading = parse_gpu_metrics("GPU Power: 2500 mW\n")
        self.assertEqual(reading.total_power, 2.5)
        self.assertEqual(reading.gpus[0].power, 2.5)

    def test_simple_form_uses_idle_complement(self):
        reading = parse_gpu_metrics("GPU HW active frequency: 389 MHz\nGPU idle residency: 30.0%\n")
        self.assertEqual(reading.form, "simple")
        self.assertEqual(reading.total_usage, 70.0)
        self.assertEqual(reading.gpus[0].frequency, 389.0)

    def test_simple_form_is_not_clamped(self):
        reading = parse_gpu_metrics("GPU idle residency: -5.0%\n")
        self.assertEqual(reading.total_usage, 105.0)

    def test_detailed_form_combines_clock_ratio_and_residency(self):
        reading = parse_gpu_metrics(SAMPLE)
        self.assertEqual(reading.form, "detailed")
        expected = (444.0 / 1398.0 * 100.0) * (100.0 - 87.5) / 100.0
        self.assertAlmostEqual(reading.total_usage, expected)
        self.assertEqual(reading.gpus[0].frequency, 444.0)
        self.assertEqual(reading.gpus[0].id, 0)

    def test_detailed_form_idle_on_same_line(self):
        text = (
            "GPU HW active frequency: 500 MHz\n"
            "GPU HW active residency: 50.0% (500MHz: 20%) (1000MHz: 30%) GPU idle residency: 50.0%\n"
        )
        reading = parse_gpu_metrics(text)
        self.assertEqual(reading.form, "detailed")
        self.assertAlmostEqual(reading.total_usage, 25.0)

    def test_detailed_form_without_idle_treats_as_fully_active(self):
        text = "GPU HW active frequency: 700 MHz\nGPU HW active residency: 9.0% (700 MHz: 5% 1400 MHz: 4%)\n"
        self.assertAlmostEqual(parse_gpu_metrics(text).total_usage, 50.0)

    def test_detailed_form_is_clamped(self):
        text = (
            "GPU HW active frequency: 2000 MHz\n"
            "GPU HW active residency: 99.0% (1000 MHz: 99%)\n"
            "GPU idle residency: 0.0%\n"
        )
        self.assertEqual(parse_gpu_metrics(text).total_usage, 100.0)

    def test_residency_without_histogram_falls_back_to_simple(self):
        text = "GPU HW active residency: 40.0%\nGPU idle residency: 60.0%\n"
        reading = parse_gpu_metrics(text)
        self.assertEqual(reading.form, "simple")
        self.assertEqual(reading.total_usage, 40.0)

    def test_missing_lines_yield_zeroed_unit(self):
        reading = parse_gpu_metrics("nothing relevant here\n")
        self.assertIsNone(reading.form)
        self.assertEqual(len(reading.gpus), 1)
        gpu = reading.gpus[0]
        self.assertEqual((gpu.power, gpu.frequency, gpu.usage), (0.0, 0.0, 0.0))

    def test_parsing_is_repeatable(self):
        self.assertEqual(parse_gpu_metrics(SAMPLE), parse_gpu_metrics(SAMPLE))


if __name__ == "__main__":
    unittest.main()
