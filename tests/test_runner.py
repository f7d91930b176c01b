import pytest

from config import FLUSH_INTERVAL
from fakes import FakeBoard, WaitForWrites, START, END, LOADED, ASK, FINISHED, PANIC
from runner import SessionRunner, SessionState
from sinks import MemorySink


def run_session(script, config, log, chunk=7):
    board = FakeBoard([script], chunk=chunk)
    runner = SessionRunner(board, config, log, settle_delay=0)
    board.cycle(0)
    sink = MemorySink()
    running = runner.loop(sink)
    return runner, sink, running, board


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"A",
        b"AB",
        b"PUF,\x00\x01\x02\x03",
        b"\xff\xff\xff",  # first byte of every marker, repeated
        b"\xff\x00\xff\x07",
        LOADED + ASK + b"x",  # in-capture markers other than END stay data
        START + b"y",
        bytes(range(256)),
    ],
)
@pytest.mark.parametrize("chunk", [1, 3, 1024])
def test_capture_is_exact_span(make_config, log, payload, chunk):
    """Test that the sink receives exactly the bytes between START and END."""
    script = [b"boot\r\n\xff", START + payload + END, b"done\r\n", FINISHED]
    runner, sink, running, _ = run_session(script, make_config(), log, chunk=chunk)
    assert sink.getvalue() == payload
    assert sink.finalized
    assert runner.count == 1
    assert running is True
    assert runner.state is SessionState.TERMINATED


def test_end_finalizes_and_counts(make_config, log, console):
    """Test END increments the count once and logs the capture size."""
    runner, sink, _, _ = run_session(
        [START, b"12345", END, FINISHED], make_config(), log
    )
    assert runner.count == 1
    assert sink.finalized
    assert "5 bytes in total written." in console.getvalue()


def test_panic_mid_capture_keeps_partial(make_config, log):
    """Test a device panic finalizes the sink with the bytes seen so far."""
    runner, sink, running, _ = run_session(
        [START, b"partial", PANIC, b"ignored", END], make_config(), log
    )
    assert sink.getvalue() == b"partial"
    assert sink.finalized
    assert runner.count == 0
    assert running is True


def test_finished_mid_capture_finalizes_sink(make_config, log):
    """Test a session ending during a capture leaves a finalized, uncounted sink."""
    runner, sink, _, _ = run_session([START, b"abc", FINISHED], make_config(), log)
    assert sink.getvalue() == b"abc"
    assert sink.finalized
    assert runner.count == 0


def test_end_outside_capture_is_ignored(make_config, log):
    runner, sink, _, _ = run_session([b"x", END, FINISHED], make_config(), log)
    assert runner.count == 0
    assert sink.getvalue() == b""


def test_max_measures_stops_run(make_config, log):
    """Test the session reports stop once the measurement limit is reached."""
    _, _, running, _ = run_session(
        [START, b"a", END, FINISHED], make_config(max_measures=1), log
    )
    assert running is False


def test_count_persists_across_sessions(make_config, log):
    board = FakeBoard([[START, b"a", END, FINISHED], [START, b"b", END, FINISHED]])
    runner = SessionRunner(board, make_config(max_measures=2), log, settle_delay=0)
    board.cycle(0)
    assert runner.loop(MemorySink()) is True
    board.cycle(0)
    assert runner.loop(MemorySink()) is False
    assert runner.count == 2


def test_second_capture_in_session_is_discarded(make_config, log):
    """Test a finalized sink is never written again within the session."""
    runner, sink, _, _ = run_session(
        [START, b"first", END, START, b"second", END, FINISHED], make_config(), log
    )
    assert sink.getvalue() == b"first"
    assert runner.count == 2


def test_live_mirror_outside_capture(make_config, log, console):
    """Test idle bytes are mirrored with non-printables shown as spaces."""
    run_session([b"hi\x01there\r\n", START, b"SECRET", END, FINISHED], make_config(), log)
    out = console.getvalue()
    assert "hi there" in out
    assert "SECRET" not in out


def test_progress_reported(make_config, log, console):
    payload = b"\x00" * (FLUSH_INTERVAL * 2 + 3)
    _, sink, _, _ = run_session([START, payload, END, FINISHED], make_config(), log)
    assert sink.getvalue() == payload
    assert f"\r{FLUSH_INTERVAL * 2} bytes written." in console.getvalue()


def test_feeder_answers_input_requests(make_config, log):
    """Test parameters are sent in order, one per input request."""
    script = [
        LOADED,
        ASK,
        WaitForWrites(2),
        ASK,
        WaitForWrites(4),
        START,
        b"data",
        END,
        FINISHED,
    ]
    _, sink, _, board = run_session(script, make_config(params=("first", "second")), log)
    assert board.writes == [b"first", b"\r", b"second", b"\r"]
    assert sink.getvalue() == b"data"


def test_feeder_cancelled_on_finish(make_config, log):
    """Test no parameter is sent when the session ends before any request."""
    _, _, _, board = run_session([LOADED, FINISHED], make_config(params=("p",)), log)
    assert board.writes == []


def test_start_stops_pending_feeder(make_config, log):
    """Test START does not block on a feeder still waiting for a request."""
    script = [LOADED, b"..", START, b"x", END, FINISHED]
    _, sink, _, board = run_session(script, make_config(params=("a", "b")), log)
    assert board.writes == []
    assert sink.getvalue() == b"x"


def test_bytes_after_terminal_marker_are_dropped(make_config, log, console):
    board = FakeBoard([[FINISHED + b"tail"]], chunk=1024)
    runner = SessionRunner(board, make_config(), log, settle_delay=0)
    board.cycle(0)
    runner.loop(MemorySink())
    assert runner.state is SessionState.TERMINATED
    assert "tail" not in console.getvalue()


@pytest.mark.parametrize("chunk", [1, 1024])
def test_start_answers_pending_request_first(make_config, log, chunk):
    """Test START lets the feeder send a parameter the device already asked for."""
    script = [LOADED + ASK + START + b"x" + END + FINISHED]
    _, sink, _, board = run_session(script, make_config(params=("a", "b")), log, chunk=chunk)
    assert board.writes == [b"a", b"\r"]
    assert sink.getvalue() == b"x"
