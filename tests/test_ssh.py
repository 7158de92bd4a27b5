import io
import socket

import paramiko
import pytest

from lbreg import ssh
from lbreg.errors import KeyFileError, TransportError
from lbreg.models import RemoteEndpoint


class _Channel:
    def __init__(self, status):
        self.status = status

    def recv_exit_status(self):
        return self.status


class _Stream:
    def __init__(self, data, status=0):
        self.data = data
        self.channel = _Channel(status)

    def read(self):
        return self.data


class FakeClient:
    instances = []
    connect_error = None
    exec_error = None

    def __init__(self):
        self.policy = None
        self.connect_kwargs = None
        self.commands = []
        self.closed = False
        FakeClient.instances.append(self)

    def set_missing_host_key_policy(self, policy):
        self.policy = policy

    def connect(self, **kwargs):
        self.connect_kwargs = kwargs
        if FakeClient.connect_error:
            raise FakeClient.connect_error

    def exec_command(self, command, timeout=None):
        self.commands.append((command, timeout))
        if FakeClient.exec_error:
            raise FakeClient.exec_error
        return None, _Stream(b"lbreg:added\n", status=0), _Stream(b"")

    def close(self):
        self.closed = True


@pytest.fixture
def fake_client(monkeypatch):
    FakeClient.instances = []
    FakeClient.connect_error = None
    FakeClient.exec_error = None
    monkeypatch.setattr(ssh.paramiko, "SSHClient", FakeClient)
    monkeypatch.setattr(ssh, "load_private_key", lambda material: ("pkey", material))
    return FakeClient


@pytest.fixture
def ep():
    return RemoteEndpoint(host="lb.internal", port=2222, user="deploy", key="KEY", directory="/etc/nginx/conf.d")


def test_connect_uses_key_and_no_agent(fake_client, ep):
    session = ssh.connect(ep, timeout_s=7)

    client = fake_client.instances[0]
    assert isinstance(client.policy, paramiko.AutoAddPolicy)
    kw = client.connect_kwargs
    assert (kw["hostname"], kw["port"], kw["username"]) == ("lb.internal", 2222, "deploy")
    assert kw["pkey"] == ("pkey", "KEY")
    assert kw["timeout"] == 7
    assert kw["allow_agent"] is False
    assert kw["look_for_keys"] is False
    assert session.client is client


def test_exec_returns_output_and_status(fake_client, ep):
    with ssh.connect(ep, timeout_s=5) as session:
        result = session.exec("echo hi")

    client = fake_client.instances[0]
    assert client.commands == [("echo hi", 5)]
    assert result.ok
    assert result.stdout == "lbreg:added\n"
    assert client.closed is True


@pytest.mark.parametrize(
    "error",
    [
        socket.gaierror(-2, "Name or service not known"),
        ConnectionRefusedError(111, "Connection refused"),
        paramiko.AuthenticationException("Authentication failed."),
        paramiko.SSHException("Error reading SSH protocol banner"),
    ],
)
def test_connect_errors_become_transport_errors(fake_client, ep, error):
    fake_client.connect_error = error
    with pytest.raises(TransportError):
        ssh.connect(ep)
    assert fake_client.instances[0].closed is True


def test_unknown_host_message(fake_client, ep):
    fake_client.connect_error = socket.gaierror(-2, "Name or service not known")
    with pytest.raises(TransportError, match="Unknown host 'lb.internal'"):
        ssh.connect(ep)


def test_exec_timeout_is_transport_error(fake_client, ep):
    fake_client.exec_error = socket.timeout("timed out")
    session = ssh.connect(ep)
    with pytest.raises(TransportError, match="timed out"):
        session.exec("sleep 100")


def test_load_private_key_rejects_garbage():
    with pytest.raises(KeyFileError):
        ssh.load_private_key("this is not a key")


def test_load_private_key_reads_rsa():
    key = paramiko.RSAKey.generate(1024)
    buf = io.StringIO()
    key.write_private_key(buf)

    loaded = ssh.load_private_key(buf.getvalue())

    assert isinstance(loaded, paramiko.RSAKey)
    assert loaded.get_base64() == key.get_base64()
