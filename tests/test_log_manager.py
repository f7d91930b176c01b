import io
import time

from config import DATE_FORMAT
from log_manager import RunLog


def test_console_only(console):
    log = RunLog(stream=console)
    log.log_data("hello")
    log.close()
    assert log.path is None
    assert console.getvalue().rstrip().endswith("] hello")


def test_run_files_are_numbered(tmp_path):
    first = RunLog(tmp_path, stream=io.StringIO())
    first.close()
    second = RunLog(tmp_path, stream=io.StringIO())
    second.log_data("measuring")
    second.close()

    folder = tmp_path / time.strftime(DATE_FORMAT)
    assert first.path == folder / "run-001.log"
    assert second.path == folder / "run-002.log"
    assert "measuring" in second.path.read_text(encoding="utf-8")


def test_live_output_replaces_unprintable(console):
    log = RunLog(stream=console)
    for byte in b"ok\x00\xff!\r\n":
        log.log_live(byte)
    assert console.getvalue() == "ok  !\r\n"


def test_status_line_starts_on_new_line(console):
    log = RunLog(stream=console)
    for byte in b"boot":
        log.log_live(byte)
    log.log_data("status")
    lines = console.getvalue().splitlines()
    assert lines[0] == "boot"
    assert lines[1].endswith("status")


def test_live_output_mirrored_to_file(tmp_path):
    log = RunLog(tmp_path, stream=io.StringIO())
    for byte in b"abc":
        log.log_live(byte)
    log.close()
    assert log.path.read_text(encoding="utf-8").endswith("abc")
