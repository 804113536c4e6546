import json
import sys
from pathlib import Path
from typing import Callable, NamedTuple

import protocol
import tasks
from protocol import Connection, ProtocolError, SessionError


# ======================================================
# Basic utilities
# ======================================================

def die(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)
    sys.exit(1)

def parse_arguments(argv: list[str]) -> tuple[str | None, str | None]:
    """Return (host:port target, config path) from argv."""
    target, cfg_path = None, None
    args = argv[1:]
    i = 0
    while i < len(args):
        if args[i] == "--config":
            if i + 1 >= len(args) or not args[i + 1].strip():
                die("client.py: Configuration not provided")
            cfg_path = args[i + 1].strip()
            i += 2
            continue
        if target is None:
            target = args[i]
        i += 1
    return target, cfg_path

def load_config(path_str: str | None) -> dict:
    if path_str is None:
        return {}
    path = Path(path_str)
    if not path.exists():
        die(f"client.py: File {path_str} does not exist")
    try:
        with path.open("r", encoding="utf-8") as f:
            cfg = json.load(f)
    except json.JSONDecodeError:
        die(f"client.py: Invalid JSON in {path_str}")
    if not isinstance(cfg, dict):
        die(f"client.py: Invalid JSON in {path_str}")
    return cfg

def parse_target(text: str) -> tuple[str, int]:
    """Split 'host:port' at the last colon; '[v6addr]:port' is accepted."""
    host, sep, port_s = text.strip().rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not sep or not host or not port_s:
        raise ValueError("Invalid host:port format.")
    try:
        port = int(port_s)
    except ValueError:
        raise ValueError("Invalid port value.") from None
    if not 0 < port <= 65535:
        raise ValueError("Invalid port value.")
    return host, port


# ======================================================
# Session
# ======================================================

class SessionResult(NamedTuple):
    task: tasks.Task
    result: str
    acknowledgment: str


def run_session(conn: Connection, out: Callable[[str], None] = print,
                debug: bool = False) -> SessionResult:
    """
    Run one greeting / task / result exchange over an open connection.
    Raises a SessionError subclass on any session-fatal condition; an
    ERROR result is sent to the server like any other result.
    """
    greeting = conn.receive_until(protocol.GREETING_TERMINATOR)
    if not protocol.is_terminated(greeting):
        raise ProtocolError("Invalid protocol format.")
    if not protocol.validate(greeting):
        raise ProtocolError("No supported protocol found.")

    conn.send(protocol.ACKNOWLEDGMENT)

    line = conn.receive_until("\n")
    shown = line.rstrip("\n")
    out(f"RECEIVED TASK: {shown}")

    task = tasks.parse_task(line)
    result = tasks.evaluate_task(task)
    conn.send(result)
    if debug:
        out(f"DEBUG: Sent result: {result.rstrip()}")

    ack = conn.receive()
    out(f"SERVER RESPONSE: {ack.rstrip()} (Result: {result.rstrip()})")
    return SessionResult(task, result, ack)


# ======================================================
# Entry point
# ======================================================

def main(argv: list[str] | None = None) -> int:
    argv = sys.argv if argv is None else argv
    target, cfg_path = parse_arguments(argv)
    if target is None:
        die("Usage: client.py <host:port> [--config <path>]")

    cfg = load_config(cfg_path)
    try:
        host, port = parse_target(target)
    except ValueError as e:
        die(f"ERROR: {e}")

    timeout = cfg.get("timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            die("client.py: Invalid timeout in configuration")
    debug = bool(cfg.get("debug", False))

    print(f"Attempting to connect to {host}:{port}", flush=True)
    try:
        with Connection.open(host, port, timeout=timeout) as conn:
            run_session(conn, debug=debug)
    except SessionError as e:
        die(f"ERROR: {e}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
