import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from powermonitor_telemetry.memory import (
    APPLE_SILICON,
    INTEL,
    MemoryInspector,
    MemoryProfile,
    parse_used_memory,
    resolve_profile,
)
from powermonitor_telemetry.runner import CommandLaunchError, CommandResult

VM_STAT = (ROOT / "tests" / "fixtures" / "vm_stat_m3.txt").read_text(encoding="utf-8")


class _FakeRunner:
    def __init__(self, outputs: dict):
        self.outputs = outputs
        self.calls: list[tuple[str, list[str]]] = []

    def run(self, command, args=(), timeout_s=None):
        self.calls.append((command, list(args)))
        out = self.outputs.get(command)
        if out is None:
            raise CommandLaunchError(command, "No such file or directory")
        if isinstance(out, Exception):
            raise out
        return out


class UsedMemoryParsingTests(unittest.TestCase):
    def test_active_plus_wired_at_4k_pages(self):
        profile = MemoryProfile(name="test", page_size=4096, used_categories=("Pages active", "Pages wired down"))
        text = "Pages active: 100.\nPages wired down: 50.\nPages free: 999.\n"
        self.assertEqual(parse_used_memory(text, profile), 614400)

    def test_apple_silicon_profile_categories(self):
        pages = 100000 + 130000 + 20000 + 50000
        self.assertEqual(parse_used_memory(VM_STAT, APPLE_SILICON), pages * 16384)

    def test_intel_profile_categories(self):
        pages = 100000 + 90000 + 20000 + 50000
        self.assertEqual(parse_used_memory(VM_STAT, INTEL), pages * 4096)

    def test_page_size_from_header_when_zero(self):
        profile = resolve_profile("intel", page_size=0)
        pages = 100000 + 90000 + 20000 + 50000
        self.assertEqual(parse_used_memory(VM_STAT, profile), pages * 16384)

    def test_header_missing_falls_back_to_profile_default(self):
        profile = resolve_profile("intel", page_size=0)
        self.assertEqual(parse_used_memory("Pages active: 2.\n", profile), 2 * 4096)

    def test_unparsable_lines_are_skipped(self):
        profile = resolve_profile("apple_silicon", used_categories=["Pages active", "Pages wired down"])
        text = "Pages active: lots.\nPages wired down: 3.\nPages active\n"
        self.assertEqual(parse_used_memory(text, profile), 3 * 16384)


class MemoryInspectorTests(unittest.TestCase):
    def test_total_memory_from_sysctl(self):
        runner = _FakeRunner({"sysctl": CommandResult(0, b"68719476736\n")})
        inspector = MemoryInspector(runner)
        self.assertEqual(inspector.total_memory(), 68719476736)
        self.assertEqual(runner.calls, [("sysctl", ["-n", "hw.memsize"])])

    def test_total_memory_non_numeric_is_zero(self):
        runner = _FakeRunner({"sysctl": CommandResult(1, b"", b"unknown oid 'hw.memsize'")})
        self.assertEqual(MemoryInspector(runner).total_memory(), 0)

    def test_launch_failures_degrade_to_zero(self):
        inspector = MemoryInspector(_FakeRunner({}))
        self.assertEqual(inspector.total_memory(), 0)
        self.assertEqual(inspector.used_memory(), 0)
        self.assertEqual(inspector.read(), (0, 0))

    def test_read_returns_total_and_used(self):
        runner = _FakeRunner(
            {
                "sysctl": CommandResult(0, b"17179869184\n"),
                "vm_stat": CommandResult(0, VM_STAT.encode("utf-8")),
            }
        )
        total, used = MemoryInspector(runner, profile=INTEL).read()
        self.assertEqual(total, 17179869184)
        self.assertEqual(used, (100000 + 90000 + 20000 + 50000) * 4096)


if __name__ == "__main__":
    unittest.main()
