import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

from powermonitor_telemetry.runner import CommandLaunchError, CommandTimeoutError, ProcessRunner


class ProcessRunnerTests(unittest.TestCase):
    def test_captures_output_and_status(self):
        code = "import sys; sys.stdout.write('out'); sys.stderr.write('err'); sys.exit(3)"
        result = ProcessRunner().run(sys.executable, ["-c", code])
        self.assertEqual(result.returncode, 3)
        self.assertFalse(result.ok)
        self.assertEqual(result.stdout, b"out")
        self.assertEqual(result.stderr_text, "err")

    def test_missing_executable_is_launch_error(self):
        with self.assertRaises(CommandLaunchError) as ctx:
            ProcessRunner().run("/nonexistent/powermonitor-missing-tool", [])
        self.assertEqual(ctx.exception.command, "/nonexistent/powermonitor-missing-tool")

    def test_timeout_bound(self):
        with self.assertRaises(CommandTimeoutError):
            ProcessRunner().run(sys.executable, ["-c", "import time; time.sleep(5)"], timeout_s=0.2)


if __name__ == "__main__":
    unittest.main()
