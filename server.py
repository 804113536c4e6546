# Reference TEXT TCP task server: one greeting, one task and one verdict per connection
import json
import math
import socket
import sys
from pathlib import Path

import protocol
import questions
import tasks

# Answers rendered with 8 significant digits are within this relative error
FLOAT_REL_TOLERANCE = 1e-7

# ======================================================
# Utility Functions - Handle basic operations
# ======================================================

def load_config(path_str: str) -> dict:
    """Load configuration JSON file, exiting with a message on any problem."""
    if not path_str:
        print("server.py: Configuration not provided", file=sys.stderr, flush=True)
        sys.exit(1)
    p = Path(path_str)
    if not p.exists():
        print(f"server.py: File {path_str} does not exist", file=sys.stderr, flush=True)
        sys.exit(1)
    try:
        with p.open("r", encoding="utf-8") as f:
            cfg = json.load(f)
    except json.JSONDecodeError:
        print(f"server.py: Invalid JSON in {path_str}", file=sys.stderr, flush=True)
        sys.exit(1)
    if not isinstance(cfg, dict):
        print(f"server.py: Invalid JSON in {path_str}", file=sys.stderr, flush=True)
        sys.exit(1)
    return cfg


def parse_config_from_argv() -> str | None:
    """Parse command line args to get the config file path."""
    argv = sys.argv[1:]
    if not argv or argv[0] != "--config" or len(argv) == 1:
        return None
    return argv[1]


def numeric_setting(cfg: dict, key: str, default, kind):
    """Read a numeric config value; a null timeout means blocking sockets."""
    value = cfg.get(key, default)
    if value is None and key == "timeout":
        return None
    try:
        return kind(value)
    except (TypeError, ValueError):
        print(f"server.py: Invalid {key} in configuration", file=sys.stderr, flush=True)
        sys.exit(1)


def build_greeting(capabilities: list[str]) -> str:
    """Join capability lines and terminate the greeting with an empty line."""
    return "\n".join(capabilities) + protocol.GREETING_TERMINATOR


# ======================================================
# Helper Functions - Task checking
# ======================================================

def expected_result(task_line: str) -> str:
    """Result line a correct client returns for task_line."""
    return tasks.evaluate_task(tasks.parse_task(task_line))


def results_match(task_line: str, answer: str, tolerance: float = 0.0001) -> bool:
    """
    Compare a client's result line with the expected one.
    ERROR and integer results must match exactly. Float answers are compared
    with the unrounded result, relatively to 8 significant digits or within
    the absolute tolerance, since clients may render more or fewer digits.
    """
    task = tasks.parse_task(task_line)
    answer = answer.strip()
    if task.domain is tasks.Domain.INTEGER or answer == tasks.ERROR:
        return expected_result(task_line).strip() == answer

    value = tasks.compute(*task)
    if value is None:
        return False
    try:
        given = float(answer)
    except ValueError:
        return False
    if math.isnan(value) or math.isnan(given):
        return math.isnan(value) and math.isnan(given)
    if math.isinf(value) or math.isinf(given):
        return value == given
    return math.isclose(value, given, rel_tol=FLOAT_REL_TOLERANCE, abs_tol=tolerance)


def serve_session(conn: protocol.Connection, greeting: str, task_line: str,
                  tolerance: float) -> bool:
    """Run one exchange with a connected client; return whether it answered correctly."""
    conn.send(greeting)
    reply = conn.receive_until("\n")
    if reply.strip() != protocol.ACKNOWLEDGMENT.strip():
        raise protocol.ProtocolError(f"Expected OK, got {reply.strip()!r}")

    conn.send(task_line)
    answer = conn.receive_until("\n")
    correct = results_match(task_line, answer, tolerance)
    conn.send("OK\n" if correct else "ERROR\n")
    return correct


# ======================================================
# Main Logic - Accept loop
# ======================================================

def main():
    cfg_path = parse_config_from_argv()
    if cfg_path is None:
        print("server.py: Configuration not provided", file=sys.stderr, flush=True)
        sys.exit(1)
    cfg = load_config(cfg_path)

    host = cfg.get("host", "127.0.0.1")
    port = numeric_setting(cfg, "port", 5050, int)
    if not 0 <= port <= 65535:
        print("server.py: Invalid port in configuration", file=sys.stderr, flush=True)
        sys.exit(1)
    greeting = build_greeting(cfg.get("capabilities", ["TEXT TCP 1.0"]))
    operators = cfg.get("operators", questions.OPERATORS)
    fixed_tasks = cfg.get("tasks", [])
    sessions = numeric_setting(cfg, "sessions", 0, int)
    timeout = numeric_setting(cfg, "timeout", 5.0, float)
    tolerance = numeric_setting(cfg, "tolerance", 0.0001, float)

    # Setup TCP server socket
    try:
        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        srv.bind((host, port))
        srv.listen()
    except OSError:
        print(f"server.py: Binding to port {port} was unsuccessful", file=sys.stderr, flush=True)
        sys.exit(1)

    print(f"[server] Listening on {host}:{port}", flush=True)

    served = 0
    with srv:
        while sessions == 0 or served < sessions:
            sock, addr = srv.accept()
            sock.settimeout(timeout)
            if fixed_tasks:
                task_line = fixed_tasks[served % len(fixed_tasks)].rstrip("\n") + "\n"
            else:
                task_line = questions.generate_task(operators)
            served += 1

            with protocol.Connection(sock) as conn:
                try:
                    correct = serve_session(conn, greeting, task_line, tolerance)
                except protocol.SessionError as e:
                    print(f"[server] Dropped {addr[0]}:{addr[1]}: {e}", flush=True)
                    continue
            verdict = "OK" if correct else "ERROR"
            print(f"[server] {addr[0]}:{addr[1]} {task_line.strip()} -> {verdict}", flush=True)


if __name__ == "__main__":
    main()
