from __future__ import annotations

import logging
import socket
import threading
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional

from replay.errors import ConfigurationError, DeliveryError

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST_PORT = 45678
DEFAULT_BROADCAST_HOST = "255.255.255.255"
GEOMESSAGE_VERSION = "1.0"


def validate_port(port: Any) -> int:
    """Return `port` as an int in 1..65535 or raise ConfigurationError."""
    if isinstance(port, bool):
        raise ConfigurationError(f"invalid port: {port!r}")
    try:
        value = int(str(port).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(f"invalid port: {port!r}") from None
    if not 1 <= value <= 65535:
        raise ConfigurationError(f"port out of range: {port!r}")
    return value


def to_geomessage_xml(record: Dict[str, str], version: str = GEOMESSAGE_VERSION) -> bytes:
    """Serialize one record as a single-message <geomessages> document."""
    root = ET.Element("geomessages")
    msg = ET.SubElement(root, "geomessage", {"v": version})
    for name, value in record.items():
        ET.SubElement(msg, name).text = "" if value is None else str(value)
    return ET.tostring(root, encoding="utf-8")


class UdpBroadcastSink:
    """
    Sends each record as one UDP datagram of geomessage XML.

    The default destination is the limited broadcast address on port 45678,
    which is where GeoEvent-style receivers listen for simulated feeds.
    """

    def __init__(self, port: Any = DEFAULT_BROADCAST_PORT, host: str = DEFAULT_BROADCAST_HOST):
        self.host = host or DEFAULT_BROADCAST_HOST
        self._port = validate_port(port)
        self._sock: Optional[socket.socket] = None
        self._lock = threading.Lock()
        self.sent = 0

    @property
    def port(self) -> int:
        return self._port

    def set_port(self, port: Any) -> int:
        self._port = validate_port(port)
        logger.info(f"Broadcast port set to {self._port}")
        return self._port

    def send(self, record: Dict[str, str]) -> None:
        payload = to_geomessage_xml(record)
        addr = (self.host, self._port)
        try:
            with self._lock:
                if self._sock is None:
                    self._sock = self._open_socket()
                self._sock.sendto(payload, addr)
        except OSError as e:
            raise DeliveryError(f"UDP send to {addr[0]}:{addr[1]} failed: {e}") from e
        self.sent += 1

    def close(self) -> None:
        with self._lock:
            if self._sock is not None:
                self._sock.close()
                self._sock = None

    def _open_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        return sock
