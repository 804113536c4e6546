import socket
import threading

import pytest

import protocol
import questions
import server


def test_build_greeting_ends_with_blank_line():
    assert server.build_greeting(["TEXT TCP 1.0", "TEXT UDP 1.0"]) == "TEXT TCP 1.0\nTEXT UDP 1.0\n\n"


def test_results_match_integer_exact():
    assert server.results_match("add 3 4\n", "7\n")
    assert not server.results_match("add 3 4\n", "7.0\n")


def test_results_match_float_tolerance():
    assert server.results_match("fdiv 1 3\n", "0.333333\n")
    assert not server.results_match("fdiv 1 3\n", "0.34\n")
    assert not server.results_match("fdiv 1 3\n", "third\n")


def test_results_match_accepts_more_digits_on_large_results():
    # expected line is 115479.54; the exact quotient is 115479.5384615...
    assert server.results_match("fdiv 150.1234 0.0013\n", "115479.538462\n")
    assert server.results_match("fdiv 150.1234 0.0013\n", "115479.54\n")
    assert not server.results_match("fdiv 150.1234 0.0013\n", "115480\n")


def test_results_match_non_finite():
    assert server.results_match("fmul 1e308 10\n", "inf\n")
    assert not server.results_match("fmul 1e308 10\n", "-inf\n")
    assert not server.results_match("fmul 1e308 10\n", "1e308\n")
    assert server.results_match("fadd inf -inf\n", "nan\n")
    assert not server.results_match("fadd inf -inf\n", "0\n")


def test_results_match_error():
    assert server.results_match("div 1 0\n", "ERROR\n")
    assert not server.results_match("div 1 0\n", "0\n")
    assert not server.results_match("add 1 1\n", "ERROR\n")


@pytest.mark.parametrize("op", questions.OPERATORS)
def test_generated_task_shape(op):
    line = questions.generate_task([op])
    assert line.endswith("\n")
    name, a, b = line.split()
    assert name == op
    if op.startswith("f"):
        float(a), float(b)
    else:
        int(a), int(b)


def _scripted_client(sock, replies, seen):
    with sock:
        for reply in replies:
            seen.append(sock.recv(1024))
            sock.sendall(reply)
        seen.append(sock.recv(1024))


def test_serve_session_verdicts():
    left, right = socket.socketpair()
    seen = []
    t = threading.Thread(target=_scripted_client, args=(right, [b"OK\n", b"6.5\n"], seen))
    t.start()
    with protocol.Connection(left) as conn:
        assert server.serve_session(conn, "TEXT TCP\n\n", "fsub 10 3.5\n", 0.0001)
    t.join(timeout=3)
    assert seen == [b"TEXT TCP\n\n", b"fsub 10 3.5\n", b"OK\n"]


def test_serve_session_rejects_missing_ok():
    left, right = socket.socketpair()
    seen = []
    t = threading.Thread(target=_scripted_client, args=(right, [b"NO\n"], seen))
    t.start()
    with protocol.Connection(left) as conn:
        with pytest.raises(protocol.ProtocolError):
            server.serve_session(conn, "TEXT TCP\n\n", "add 1 2\n", 0.0001)
    t.join(timeout=3)
