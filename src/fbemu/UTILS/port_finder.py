"""
Utilities for checking availability of network ports.
"""
import socket


def is_port_free(port: int, host: str = '') -> bool:
    """
    Checks if a TCP port can be bound on this machine.

    :param port: The port to probe.
    :param host: Interface to probe; all interfaces by default.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
            return True
        except OSError:
            return False
