import json
import socket
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def free_port() -> int:
    """Ask the OS for a port nobody is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]

def wait_port(host, port, timeout=3.0):
    """Wait until (host,port) is connectable or timeout."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((host, port), timeout=0.3):
                return True
        except OSError:
            time.sleep(0.05)
    return False

def write_config(directory: Path, name: str, cfg: dict) -> str:
    path = Path(directory) / name
    path.write_text(json.dumps(cfg), encoding="utf-8")
    return str(path)

def spawn_server(cfg_path: str):
    """Start server in background."""
    return subprocess.Popen(
        [sys.executable, str(ROOT / "server.py"), "--config", cfg_path],
        stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True
    )

def run_client(target: str, cfg_path: str | None = None, timeout=8):
    """Run client.py to completion; return (returncode, stdout, stderr)."""
    cmd = [sys.executable, str(ROOT / "client.py"), target]
    if cfg_path:
        cmd += ["--config", cfg_path]
    proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    return proc.returncode, proc.stdout, proc.stderr
