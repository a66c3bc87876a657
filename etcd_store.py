#!/usr/bin/env python3
"""
etcd store access

Thin layer over the etcd3 client: TLS material loading, endpoint parsing,
the single prefix fetch and per-key deletes. Keys travel as raw bytes end to
end, so binary keys can be read and removed.
"""

import ssl
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlsplit

import etcd3
import grpc
from etcd3.exceptions import ConnectionFailedError, Etcd3Exception

from kleidi_config import ConfigError

DEFAULT_PORT = 2379


class StoreError(Exception):
    """A request to the etcd cluster failed"""


@dataclass(frozen=True)
class KeyRecord:
    """A key/value pair as retrieved from the store"""

    key: bytes
    value: bytes


@dataclass(frozen=True)
class TransportCredentials:
    """Paths of validated PEM files for a mutually authenticated TLS connection"""

    ca_cert: str
    cert_cert: str
    cert_key: str


def _no_password() -> bytes:
    # Encrypted private keys are rejected instead of prompting on the terminal
    return b""


def load_transport_credentials(cacert: str, cert: str, key: str) -> TransportCredentials:
    """Load and validate the CA bundle, client certificate and private key.

    Raises:
        ConfigError: if any file is missing, unreadable or does not parse
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        context.load_cert_chain(certfile=cert, keyfile=key, password=_no_password)
    except OSError as e:  # ssl.SSLError included
        raise ConfigError(f"load cert/key failed: {e}") from e

    try:
        context.load_verify_locations(cafile=cacert)
    except ssl.SSLError as e:
        raise ConfigError(f"CA parse failed: {e}") from e
    except OSError as e:
        raise ConfigError(f"read CA failed: {e}") from e

    return TransportCredentials(ca_cert=cacert, cert_cert=cert, cert_key=key)


def prefix_range_end(prefix: bytes) -> bytes:
    """End of the key range covering every key that starts with *prefix*.

    Trailing 0xff bytes are dropped and the last remaining byte is
    incremented; a prefix made only of 0xff bytes ranges to the end of the
    keyspace, which etcd spells b"\\0".
    """
    end = bytearray(prefix)
    while end and end[-1] == 0xFF:
        end.pop()
    if not end:
        return b"\0"
    end[-1] += 1
    return bytes(end)


def parse_endpoint(endpoint: str) -> tuple[str, int]:
    """Split an endpoint such as "https://10.0.0.1:2379" into host and port."""
    parts = urlsplit(endpoint if "://" in endpoint else f"//{endpoint}")
    if parts.scheme not in ("", "http", "https") or not parts.hostname:
        raise ConfigError(f"Invalid etcd endpoint: {endpoint!r}")
    try:
        port = parts.port or DEFAULT_PORT
    except ValueError as e:
        raise ConfigError(f"Invalid etcd endpoint: {endpoint!r} ({e})") from e
    return parts.hostname, port


class EtcdStore:
    """Store client used by kleidi; every request carries the configured timeout

    Endpoints are tried in the order given. A request that cannot reach the
    current endpoint is sent to the next one, and the endpoint that answered
    is used for the following requests.
    """

    def __init__(
        self,
        endpoints: list[str],
        timeout: float,
        credentials: Optional[TransportCredentials] = None,
        client=None,
    ):
        """Prepare the connection to the cluster

        Args:
            endpoints: etcd endpoints, at least one
            timeout: Deadline in seconds applied to each request
            credentials: TLS material; None for a plaintext connection
            client: Pre-built etcd3 client, used instead of connecting
        """
        self.timeout = timeout
        self.credentials = credentials
        self._current = 0

        if client is not None:
            self._endpoints = [None]
            self._clients = [client]
            return

        if not endpoints:
            raise ConfigError("Missing etcd endpoints")
        self._endpoints = [parse_endpoint(endpoint) for endpoint in endpoints]
        self._clients = [None] * len(self._endpoints)

    def _connect(self, host: str, port: int):
        tls = {}
        if self.credentials:
            tls = {
                "ca_cert": self.credentials.ca_cert,
                "cert_cert": self.credentials.cert_cert,
                "cert_key": self.credentials.cert_key,
            }
        try:
            return etcd3.client(host=host, port=port, timeout=self.timeout, **tls)
        except (Etcd3Exception, grpc.RpcError, OSError) as e:
            raise StoreError(f"etcd client error: {e}") from e

    def _client_at(self, index: int):
        if self._clients[index] is None:
            host, port = self._endpoints[index]
            self._clients[index] = self._connect(host, port)
        return self._clients[index]

    def _request(self, operation: Callable):
        last_error = None
        for offset in range(len(self._clients)):
            index = (self._current + offset) % len(self._clients)
            try:
                result = operation(self._client_at(index))
            except ConnectionFailedError as e:
                last_error = e
                continue
            self._current = index
            return result
        raise last_error

    def fetch_prefix(self, prefix: bytes) -> list[KeyRecord]:
        """Fetch every key/value pair whose key starts with *prefix*.

        An empty prefix matches the whole keyspace. Records come back in the
        store's key order.
        """

        def fetch(client):
            if prefix:
                results = client.get_range(prefix, prefix_range_end(prefix))
            else:
                results = client.get_all()
            return [KeyRecord(key=bytes(meta.key), value=bytes(value or b"")) for value, meta in results]

        try:
            return self._request(fetch)
        except (Etcd3Exception, grpc.RpcError) as e:
            raise StoreError(f"Failed to get keys from etcd: {e}") from e

    def delete_key(self, key: bytes) -> None:
        """Delete a single key.

        Raises:
            StoreError: if the request fails or the key no longer exists
        """
        try:
            deleted = self._request(lambda client: client.delete(key))
        except (Etcd3Exception, grpc.RpcError) as e:
            raise StoreError(str(e) or type(e).__name__) from e
        if not deleted:
            raise StoreError("key not found")

    def close(self):
        for client in self._clients:
            if client is not None:
                client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
