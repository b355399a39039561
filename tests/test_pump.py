"""Tests for tidalrelay.process.pump.OutputPump."""

from __future__ import annotations

import os
import subprocess
import threading

from conftest import wait_until
from tidalrelay.process.errors import PumpFault
from tidalrelay.process.pump import OutputPump


class FakeProcess:
    """Just enough of Popen for the pump: poll(), returncode, stdout, stderr."""

    def __init__(self) -> None:
        out_r, self.out_w = os.pipe()
        err_r, self.err_w = os.pipe()
        self.stdout = os.fdopen(out_r, "rb")
        self.stderr = os.fdopen(err_r, "rb")
        self.returncode: int | None = None

    def poll(self) -> int | None:
        return self.returncode

    def exit(self, code: int = 0) -> None:
        self.returncode = code
        for fd in (self.out_w, self.err_w):
            try:
                os.close(fd)
            except OSError:
                pass


class FailingStream:
    def read1(self, size: int) -> bytes:
        raise OSError("stdout went away")

    def close(self) -> None:
        pass


class Recorder:
    def __init__(self) -> None:
        self.stdout: list[str] = []
        self.stderr: list[str] = []
        self.faults: list[BaseException] = []
        self.lock = threading.Lock()

    def on_stdout(self, text: str) -> None:
        with self.lock:
            self.stdout.append(text)

    def on_stderr(self, text: str) -> None:
        with self.lock:
            self.stderr.append(text)

    def on_fault(self, error: BaseException) -> None:
        with self.lock:
            self.faults.append(error)


def _pump(proc, rec: Recorder, **kwargs) -> OutputPump:
    return OutputPump(
        proc,
        on_stdout=rec.on_stdout,
        on_stderr=rec.on_stderr,
        on_fault=rec.on_fault,
        interval=kwargs.pop("interval", 0.01),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Forwarding
# ---------------------------------------------------------------------------


class TestOutputPumpForwarding:
    def test_forwards_stdout(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        pump = _pump(proc, rec)
        pump.start()
        os.write(proc.out_w, b"tidal> ")
        assert wait_until(lambda: "".join(rec.stdout) == "tidal> ")
        assert rec.stderr == []
        proc.exit()

    def test_forwards_stderr(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        pump = _pump(proc, rec)
        pump.start()
        os.write(proc.err_w, b"Variable not in scope: d13")
        assert wait_until(lambda: "".join(rec.stderr) == "Variable not in scope: d13")
        assert rec.stdout == []
        proc.exit()

    def test_never_forwards_empty_batches(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        pump = _pump(proc, rec)
        pump.start()
        os.write(proc.out_w, b"x")
        assert wait_until(lambda: rec.stdout == ["x"])
        proc.exit()
        pump.join(timeout=5)
        assert all(batch for batch in rec.stdout + rec.stderr)

    def test_stdout_order_preserved(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        pump = _pump(proc, rec)
        pump.start()
        expected = "".join(f"line {i}\n" for i in range(50))
        for i in range(50):
            os.write(proc.out_w, f"line {i}\n".encode())
        assert wait_until(lambda: "".join(rec.stdout) == expected)
        proc.exit()


# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------


class TestOutputPumpTermination:
    def test_stops_when_process_exits(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        pump = _pump(proc, rec)
        pump.start()
        assert pump.running
        proc.exit()
        pump.join(timeout=5)
        assert not pump.running
        assert rec.faults == []

    def test_start_twice_is_noop(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        pump = _pump(proc, rec)
        pump.start()
        pump.start()
        proc.exit()
        pump.join(timeout=5)
        assert not pump.running

    def test_output_written_right_before_exit_is_delivered(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        pump = _pump(proc, rec, interval=0.5)
        pump.start()
        os.write(proc.out_w, b"last stdout")
        os.write(proc.err_w, b"last stderr")
        proc.exit(1)
        pump.join(timeout=5)
        assert "".join(rec.stdout) == "last stdout"
        assert "".join(rec.stderr) == "last stderr"

    def test_startup_error_of_exiting_interpreter_is_delivered(self) -> None:
        for _ in range(20):
            proc = subprocess.Popen(
                ["sh", "-c", "echo 'ghci: startup error' 1>&2; exit 3"],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
            rec = Recorder()
            pump = _pump(proc, rec)
            pump.start()
            pump.join(timeout=5)
            assert not pump.running
            assert "".join(rec.stderr) == "ghci: startup error\n"
            assert rec.faults == []

    def test_run_returns_immediately_for_dead_process(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        proc.exit(1)
        pump = _pump(proc, rec)
        pump.run()  # Synchronous; must not loop
        assert rec.faults == []


# ---------------------------------------------------------------------------
# Faults
# ---------------------------------------------------------------------------


class TestOutputPumpFaults:
    def test_callback_error_reported_once(self) -> None:
        proc, rec = FakeProcess(), Recorder()

        def explode(text: str) -> None:
            raise RuntimeError("display broke")

        pump = OutputPump(
            proc, on_stdout=explode, on_stderr=rec.on_stderr,
            on_fault=rec.on_fault, interval=0.01,
        )
        pump.start()
        os.write(proc.out_w, b"boom")
        os.write(proc.out_w, b"boom again")
        pump.join(timeout=5)
        assert not pump.running
        assert len(rec.faults) == 1
        assert isinstance(rec.faults[0], PumpFault)
        assert isinstance(rec.faults[0].__cause__, RuntimeError)
        proc.exit()

    def test_read_error_reported(self) -> None:
        proc, rec = FakeProcess(), Recorder()
        proc.stdout = FailingStream()  # type: ignore[assignment]
        pump = _pump(proc, rec)
        pump.start()
        pump.join(timeout=5)
        assert len(rec.faults) == 1
        assert isinstance(rec.faults[0].__cause__, OSError)
        proc.exit()

    def test_fault_callback_error_is_contained(self) -> None:
        proc = FakeProcess()
        proc.stdout = FailingStream()  # type: ignore[assignment]

        def bad_fault(error: BaseException) -> None:
            raise RuntimeError("fault handler broke")

        pump = OutputPump(
            proc, on_stdout=lambda t: None, on_stderr=lambda t: None,
            on_fault=bad_fault, interval=0.01,
        )
        pump.start()
        pump.join(timeout=5)
        assert not pump.running
        proc.exit()
