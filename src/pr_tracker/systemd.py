"""systemd socket activation.

Implements the sd_listen_fds(3) protocol directly: systemd passes listening
sockets starting at fd 3 and describes them with LISTEN_PID and LISTEN_FDS.
"""

from __future__ import annotations

import logging
import os
import socket

from .errors import SocketActivationError

logger = logging.getLogger(__name__)

SD_LISTEN_FDS_START = 3


def listen_fds(unset_environment: bool = True) -> int:
    """Number of file descriptors passed to this process by systemd.

    Returns 0 if none were passed, or if they were meant for another
    process (LISTEN_PID doesn't match ours).

    Raises:
        SocketActivationError: If the variables are set but malformed.
    """
    try:
        pid = os.environ.get("LISTEN_PID")
        fds = os.environ.get("LISTEN_FDS")
        if pid is None or fds is None:
            return 0

        try:
            if int(pid) != os.getpid():
                return 0
            count = int(fds)
        except ValueError as e:
            raise SocketActivationError(f"Malformed socket activation variables: {e}") from e
        if count < 0:
            raise SocketActivationError(f"Invalid LISTEN_FDS: {fds}")

        for fd in range(SD_LISTEN_FDS_START, SD_LISTEN_FDS_START + count):
            try:
                os.set_inheritable(fd, False)
            except OSError as e:
                raise SocketActivationError(f"file descriptor {fd}: {e}") from e
        return count
    finally:
        if unset_environment:
            for name in ("LISTEN_PID", "LISTEN_FDS", "LISTEN_FDNAMES"):
                os.environ.pop(name, None)


def listen_sockets(count: int, start: int = SD_LISTEN_FDS_START) -> list[socket.socket]:
    """Wrap `count` passed file descriptors, from `start` on, as socket objects.

    Address family and type are detected from each descriptor, so both
    TCP and Unix sockets work.

    Raises:
        SocketActivationError: If a descriptor is not a socket.
    """
    sockets = []
    for fd in range(start, start + count):
        try:
            sock = socket.socket(fileno=fd)
        except OSError as e:
            raise SocketActivationError(f"file descriptor {fd} is not a socket") from e
        if sock.family not in (socket.AF_INET, socket.AF_INET6, socket.AF_UNIX):
            raise SocketActivationError(f"file descriptor {fd} is not an inet or unix socket")
        logger.info(f"Listening on inherited fd {fd} ({sock.family.name})")
        sockets.append(sock)
    return sockets
