"""Run the application initialization in headless mode and capture output.

This script launches a child Python process to run the actual import and
initialisation. Running as a subprocess ensures OS-level stdout/stderr (for
example messages emitted by Qt's C++ layer) are captured into files instead
of leaking to the console where Python-level redirection doesn't catch them.

QApplication.exec_ is replaced in the child by a short event pump, so the
window is built, a few frames are animated and every scene is torn down
without a display.

Usage:
  python run_headless_capture.py [--scene galaxy|flowers|text]

Outputs:
  - run_output.txt : combined stdout+stderr from the child run
  - run_exception.txt : contains the traceback (or full output) if the child
    process exited with an error code
"""
from __future__ import annotations

import os
import sys
import time
import traceback

# Force Qt to use offscreen platform to avoid GUI requirement for the child
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Ensure repo root is on sys.path for child runs
ROOT = os.path.dirname(os.path.abspath(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

out_file = os.path.join(ROOT, "run_output.txt")
err_file = os.path.join(ROOT, "run_exception.txt")

PUMP_SECONDS = 0.5


def _run_child_mode(argv) -> int:
    """Run the initialisation in-process (child mode).

    This mode is intended to be executed by a parent process which captures
    the child's stdout/stderr at the OS level.
    """
    try:
        from PyQt5 import QtWidgets

        def _fake_exec(self, *args, **kwargs):
            deadline = time.monotonic() + PUMP_SECONDS
            while time.monotonic() < deadline:
                self.processEvents()
                time.sleep(0.005)
            for widget in self.topLevelWidgets():
                widget.close()
            self.processEvents()
            return 0

        QtWidgets.QApplication.exec_ = _fake_exec  # type: ignore[attr-defined]
    except ImportError:
        # If PyQt5 isn't available the import below will fail and we'll report it
        pass

    try:
        import lilygalaxy.main as m

        print("Imported lilygalaxy.main OK")
        try:
            rc = m.main(["--debug", *argv])
            print("m.main() returned", rc)
            return int(rc) if isinstance(rc, int) else 0
        except SystemExit as se:
            print("m.main() raised SystemExit:", se)
            return se.code if isinstance(se.code, int) else 1
        except Exception:
            traceback.print_exc()
            return 2
    except Exception:
        traceback.print_exc()
        return 3


def _run_parent_mode(argv) -> None:
    """Launch a child Python process and capture its combined output.

    The child is invoked with RUN_AS_CHILD=1 to select the in-process
    initialisation path. The parent's job is to write the child's output to
    `run_output.txt` and, if the child failed, to write details to
    `run_exception.txt`.
    """
    import subprocess

    env = dict(os.environ)
    env["RUN_AS_CHILD"] = "1"
    env.setdefault("QT_QPA_PLATFORM", "offscreen")
    env.setdefault("LILY_FORCE_BACKEND", "raster")

    proc = subprocess.run([sys.executable, __file__, *argv], env=env, capture_output=True, text=True)

    # Always write combined stdout+stderr to run_output.txt for inspection
    combined = proc.stdout + ("\n" + proc.stderr if proc.stderr else "")
    with open(out_file, "w", encoding="utf-8") as outf:
        outf.write(combined)

    if proc.returncode != 0:
        # Child failed; write the full output into run_exception.txt as well
        with open(err_file, "w", encoding="utf-8") as errf:
            errf.write(combined)
        print("Child process failed; see", err_file)
    else:
        print("Run completed without exception; see", out_file)


if __name__ == "__main__":
    if os.environ.get("RUN_AS_CHILD") == "1":
        sys.exit(_run_child_mode(sys.argv[1:]))
    else:
        _run_parent_mode(sys.argv[1:])
