"""Docker daemon.json document with passthrough of keys it does not model."""

import json
import math
from typing import Any

from .errors import DaemonConfigError

HOSTS = "hosts"
TLS_VERIFY = "tlsverify"
TLS_CA_CERT = "tlscacert"
TLS_CERT = "tlscert"
TLS_KEY = "tlskey"


def _reject_constant(name: str) -> Any:
    raise DaemonConfigError(f"invalid daemon.json: {name} is not a JSON number")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise DaemonConfigError(f"invalid daemon.json: number {text} is out of range")
    return value


class DaemonConfig:
    """Mutable view over a parsed daemon.json object.

    Only ``hosts`` and the TLS fields are modelled. Every other key is kept
    in the underlying dict and written back unchanged, in the order it was read.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})

    @classmethod
    def parse(cls, raw: bytes) -> "DaemonConfig":
        """Parse raw daemon.json bytes.

        An empty or whitespace-only document is treated as ``{}``. Numbers that are
        not finite floats are rejected; they cannot be written back as JSON.

        Raises:
            DaemonConfigError: If the document is not valid JSON or not an object
        """
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        if not text.strip():
            return cls()
        try:
            data = json.loads(text, parse_constant=_reject_constant, parse_float=_parse_finite_float)
        except json.JSONDecodeError as e:
            raise DaemonConfigError(f"invalid daemon.json: {e}") from e
        if not isinstance(data, dict):
            raise DaemonConfigError(
                f"daemon.json must be a JSON object, got {type(data).__name__}"
            )
        if not isinstance(data.get(HOSTS, []), (list, str)):
            raise DaemonConfigError("daemon.json 'hosts' must be a list of addresses")
        return cls(data)

    @property
    def hosts(self) -> list[str]:
        value = self._data.get(HOSTS, [])
        if isinstance(value, str):
            return [value]
        return list(value)

    def add_host(self, address: str) -> None:
        """Add a bind address unless it is already present."""
        hosts = self.hosts
        if address not in hosts:
            hosts.append(address)
        self._data[HOSTS] = hosts

    @property
    def tls_verify(self) -> bool:
        return bool(self._data.get(TLS_VERIFY, False))

    @tls_verify.setter
    def tls_verify(self, value: bool) -> None:
        self._data[TLS_VERIFY] = value

    @property
    def tls_ca_cert(self) -> str | None:
        return self._data.get(TLS_CA_CERT)

    @tls_ca_cert.setter
    def tls_ca_cert(self, path: str) -> None:
        self._data[TLS_CA_CERT] = path

    @property
    def tls_cert(self) -> str | None:
        return self._data.get(TLS_CERT)

    @tls_cert.setter
    def tls_cert(self, path: str) -> None:
        self._data[TLS_CERT] = path

    @property
    def tls_key(self) -> str | None:
        return self._data.get(TLS_KEY)

    @tls_key.setter
    def tls_key(self, path: str) -> None:
        self._data[TLS_KEY] = path

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def serialize(self) -> bytes:
        """Serialize to indented JSON bytes with a trailing newline."""
        text = json.dumps(self._data, indent=2, ensure_ascii=False, allow_nan=False)
        return (text + "\n").encode("utf-8")
