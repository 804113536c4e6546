import socket
from typing import Iterator

CAPABILITY = "TEXT TCP"
ACKNOWLEDGMENT = "OK\n"
GREETING_TERMINATOR = "\n\n"

RECV_SIZE = 1024


# ======================================================
# Session-fatal errors
# ======================================================

class SessionError(Exception):
    """Any failure that ends the session with a non-zero exit status."""


class ResolutionError(SessionError):
    pass


class ConnectError(SessionError):
    pass


class ConnectionFailed(SessionError):
    pass


class ConnectionClosed(SessionError):
    pass


class ProtocolError(SessionError):
    pass


# ======================================================
# Greeting validation
# ======================================================

def is_terminated(greeting: str) -> bool:
    """A well-formed greeting ends with an empty line."""
    return len(greeting) >= 2 and greeting.endswith(GREETING_TERMINATOR)


def iter_lines(text: str) -> Iterator[str]:
    """Yield the non-empty '\\n'-separated lines of text."""
    start = 0
    while start < len(text):
        end = text.find("\n", start)
        if end == -1:
            end = len(text)
        if end > start:
            yield text[start:end]
        start = end + 1


def validate(greeting: str) -> bool:
    """Accept a greeting that is terminated and announces the TEXT TCP capability."""
    if not is_terminated(greeting):
        return False
    return any(line.startswith(CAPABILITY) for line in iter_lines(greeting))


# ======================================================
# Connection
# ======================================================

class Connection:
    """Blocking text connection over a connected stream socket."""

    def __init__(self, sock: socket.socket, encoding: str = "utf-8"):
        self.sock = sock
        self.encoding = encoding
        self._buf = bytearray()

    @classmethod
    def open(cls, host: str, port: int, timeout: float | None = None) -> "Connection":
        """Resolve host and connect to the first address that accepts."""
        try:
            candidates = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
        except socket.gaierror as e:
            raise ResolutionError(e.strerror or str(e)) from e

        last_err = None
        for family, socktype, proto, _, addr in candidates:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as e:
                last_err = e
                continue
            try:
                sock.settimeout(timeout)
                sock.connect(addr)
            except OSError as e:
                last_err = e
                sock.close()
                continue
            return cls(sock)
        raise ConnectError("Connection to the server failed.") from last_err

    def send(self, text: str) -> None:
        try:
            self.sock.sendall(text.encode(self.encoding))
        except OSError as e:
            raise ConnectionFailed(f"Failed to send data: {e}") from e

    def _read_chunk(self) -> bytes:
        try:
            return self.sock.recv(RECV_SIZE)
        except OSError as e:
            raise ConnectionFailed(f"Failed to receive data: {e}") from e

    def _decode(self, data: bytes) -> str:
        return data.decode(self.encoding, errors="replace")

    def receive(self) -> str:
        """Return whatever is available next; an empty read is fatal."""
        if self._buf:
            data = bytes(self._buf)
            self._buf.clear()
            return self._decode(data)
        chunk = self._read_chunk()
        if not chunk:
            raise ConnectionClosed("Connection closed by server.")
        return self._decode(chunk)

    def receive_until(self, terminator: str) -> str:
        """
        Read until terminator has arrived and return everything up to and
        including it. Bytes after the terminator stay buffered. If the server
        closes before the terminator, whatever was received is returned.
        """
        term = terminator.encode(self.encoding)
        while True:
            i = self._buf.find(term)
            if i != -1:
                end = i + len(term)
                data = bytes(self._buf[:end])
                del self._buf[:end]
                return self._decode(data)
            chunk = self._read_chunk()
            if not chunk:
                if not self._buf:
                    raise ConnectionClosed("Connection closed by server.")
                data = bytes(self._buf)
                self._buf.clear()
                return self._decode(data)
            self._buf.extend(chunk)

    def close(self) -> None:
        try:
            self.sock.close()
        except OSError:
            pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
