import shutil
import subprocess
import sys
import time
import uuid

import pytest

from lbreg.models import CommandResult, RemoteEndpoint


class FakeSession:
    """Records scripts instead of running them."""

    def __init__(self, result=None, error=None):
        self.result = result or CommandResult(0, "lbreg:created\n", "")
        self.error = error
        self.scripts = []
        self.closed = False

    def exec(self, script):
        self.scripts.append(script)
        if self.error:
            raise self.error
        return self.result

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True


class FakeConnector:
    def __init__(self, session=None, error=None):
        self.session = session or FakeSession()
        self.error = error
        self.calls = []

    def __call__(self, endpoint, timeout_s):
        self.calls.append((endpoint, timeout_s))
        if self.error:
            raise self.error
        return self.session


class LocalShellSession:
    """Runs scripts with a local shell, standing in for the remote login shell."""

    def __init__(self, shell="bash"):
        self.shell = shell
        self.scripts = []

    def exec(self, script):
        self.scripts.append(script)
        proc = subprocess.run([self.shell, "-c", script], capture_output=True, text=True, timeout=30)
        return CommandResult(proc.returncode, proc.stdout, proc.stderr)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        pass


def _shell_tools_available() -> bool:
    # GNU sed is needed for `\n` in replacements
    return sys.platform.startswith("linux") and all(shutil.which(t) for t in ("bash", "sh", "sed", "grep", "pkill"))


needs_shell = pytest.mark.skipif(not _shell_tools_available(), reason="bash, sh, GNU sed or pkill not available")


@pytest.fixture
def endpoint(tmp_path):
    return RemoteEndpoint(host="lb.internal", port=22, user="deploy", key="not-a-real-key", directory=str(tmp_path))


@pytest.fixture
def fake_connector():
    return FakeConnector()


@pytest.fixture
def local_shell():
    session = LocalShellSession()
    return session, FakeConnector(session=session)


@pytest.fixture
def proxy_process():
    """A process that exits 0 on SIGHUP; yields (binary_name, Popen)."""
    name = f"lbreg-test-proxy-{uuid.uuid4().hex}"
    proc = subprocess.Popen(
        ["bash", "-c", "trap 'exit 0' HUP; while true; do sleep 0.1; done", name],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    time.sleep(0.5)  # let bash install the trap
    try:
        yield name, proc
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait(timeout=5)
