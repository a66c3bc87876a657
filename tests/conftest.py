import datetime
import io
from types import SimpleNamespace

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from rich.console import Console

from console_ui import ConsoleUI
from etcd_store import KeyRecord, StoreError
from kleidi_config import SharedConfigManager


class FakeEtcdClient:
    """Stand-in for an etcd3 client holding an ordered in-memory keyspace"""

    def __init__(self, items=None, fail_with=None):
        self.items = dict(items or {})
        self.fail_with = fail_with
        self.deleted = []
        self.closed = False
        self.range_calls = []

    def _results(self, keys):
        return [(self.items[k], SimpleNamespace(key=k)) for k in sorted(keys)]

    def get_range(self, range_start, range_end):
        self.range_calls.append((range_start, range_end))
        if self.fail_with:
            raise self.fail_with
        # b"\0" as the range end means every key from range_start onwards
        return iter(
            self._results(k for k in self.items if range_start <= k and (range_end == b"\0" or k < range_end))
        )

    def get_all(self):
        self.range_calls.append((b"\0", b"\0"))
        if self.fail_with:
            raise self.fail_with
        return iter(self._results(self.items))

    def delete(self, key):
        if self.fail_with:
            raise self.fail_with
        if key not in self.items:
            return False
        del self.items[key]
        self.deleted.append(key)
        return True

    def close(self):
        self.closed = True


class FakeStore:
    """Store double used by the application tests"""

    def __init__(self, records=(), failing_keys=(), fetch_error=None):
        self.records = [KeyRecord(k, v) for k, v in records]
        self.failing_keys = set(failing_keys)
        self.fetch_error = fetch_error
        self.fetched_prefixes = []
        self.deleted = []
        self.closed = False
        self.opened_with = None

    def __call__(self, endpoints, timeout, credentials=None):
        self.opened_with = (endpoints, timeout, credentials)
        return self

    def fetch_prefix(self, prefix):
        self.fetched_prefixes.append(prefix)
        if self.fetch_error:
            raise self.fetch_error
        return [r for r in self.records if r.key.startswith(prefix)]

    def delete_key(self, key):
        if key in self.failing_keys:
            raise StoreError("etcdserver: request timed out")
        self.deleted.append(key)

    def close(self):
        self.closed = True


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, highlight=False, emoji=False, color_system=None)


@pytest.fixture
def ui(console):
    return ConsoleUI(console=console)


@pytest.fixture
def output(console):
    def _output() -> str:
        return console.file.getvalue()

    return _output


@pytest.fixture
def config_manager(tmp_path):
    return SharedConfigManager(tmp_path / ".kleidi")


@pytest.fixture
def fake_etcd():
    return FakeEtcdClient


@pytest.fixture
def fake_store():
    return FakeStore


@pytest.fixture
def tls_files(tmp_path):
    """Self-signed certificate and key written as PEM files; the certificate doubles as the CA"""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "kleidi-test")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )

    paths = SimpleNamespace(
        cacert=tmp_path / "ca.pem",
        cert=tmp_path / "client.pem",
        key=tmp_path / "client.key",
    )
    paths.cacert.write_bytes(cert_pem)
    paths.cert.write_bytes(cert_pem)
    paths.key.write_bytes(key_pem)
    return paths
