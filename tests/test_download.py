"""Tests for the Download executor."""

import hashlib
import http.client
import io
import socket
import threading
import urllib.error
from unittest.mock import patch

import pytest

from flash_workflow.errors import ConfigurationError, ErrorKind
from flash_workflow.executors.download import DownloadExecutor, file_digest, parse_checksum, parse_retry_count
from flash_workflow.workflow.models import Step

PAYLOAD = b"firmware-image-" * 100


class FakeResponse:
    """Minimal stand-in for the object returned by urlopen."""

    def __init__(self, body: bytes, content_length: int | None = None):
        self._stream = io.BytesIO(body)
        length = len(body) if content_length is None else content_length
        self.headers = {"Content-Length": str(length)}

    def read(self, size=-1):
        return self._stream.read(size)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def download_step(output, url="https://example.com/fw.bin", checksum=None, retry_count=None):
    params = {"Url": url, "Output": str(output)}
    if checksum is not None:
        params["Checksum"] = checksum
    if retry_count is not None:
        params["RetryCount"] = str(retry_count)
    return Step(type="Download", name="fetch", params=params, entries=tuple(params.items()))


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def executor(sleeps):
    return DownloadExecutor(sleep=sleeps.append)


class TestParseChecksum:
    """Tests for checksum declarations."""

    def test_normalizes_case(self):
        """Test algorithm is upper-cased and digest lower-cased."""
        assert parse_checksum("sha256:ABCDEF") == ("SHA256", "abcdef")

    @pytest.mark.parametrize("declaration", ["nocolon", "SHA256:", ":abc", "SHA256:a:b"])
    def test_malformed(self, declaration):
        """Test malformed declarations are rejected."""
        with pytest.raises(ConfigurationError):
            parse_checksum(declaration)

    def test_unsupported_algorithm(self):
        """Test unknown algorithms are rejected."""
        with pytest.raises(ConfigurationError, match="CRC32"):
            parse_checksum("crc32:1234")


class TestParseRetryCount:
    """Tests for RetryCount parsing."""

    def test_default(self):
        """Test missing value gives the default of 3."""
        assert parse_retry_count(None) == 3

    def test_explicit(self):
        """Test explicit count."""
        assert parse_retry_count("5") == 5

    @pytest.mark.parametrize("value", ["abc", "0", "-2"])
    def test_invalid(self, value):
        """Test non-integer and non-positive counts are rejected."""
        with pytest.raises(ConfigurationError):
            parse_retry_count(value)


class TestFileDigest:
    """Tests for file hashing."""

    @pytest.mark.parametrize(
        "algorithm,factory",
        [("MD5", hashlib.md5), ("SHA1", hashlib.sha1), ("SHA256", hashlib.sha256)],
    )
    def test_matches_hashlib(self, tmp_path, algorithm, factory):
        """Test digests match hashlib."""
        path = tmp_path / "f.bin"
        path.write_bytes(PAYLOAD)
        assert file_digest(path, algorithm) == factory(PAYLOAD).hexdigest()


class TestDownloadExecutor:
    """Tests for DownloadExecutor.execute."""

    def test_success_without_checksum(self, executor, make_context, tmp_path):
        """Test a plain download writes the body and creates parents."""
        output = tmp_path / "downloads" / "fw.bin"
        with patch("urllib.request.urlopen", return_value=FakeResponse(PAYLOAD)) as mock_open:
            result = executor.execute(download_step(output), make_context())

        assert result.success
        assert output.read_bytes() == PAYLOAD
        mock_open.assert_called_once()

    def test_success_with_matching_checksum(self, executor, make_context, tmp_path):
        """Test a matching checksum passes (case-insensitive)."""
        digest = hashlib.sha256(PAYLOAD).hexdigest().upper()
        output = tmp_path / "fw.bin"
        with patch("urllib.request.urlopen", return_value=FakeResponse(PAYLOAD)):
            result = executor.execute(download_step(output, checksum=f"sha256:{digest}"), make_context())

        assert result.success

    def test_overwrites_existing_file(self, executor, make_context, tmp_path):
        """Test an existing output file is truncated, not appended to."""
        output = tmp_path / "fw.bin"
        output.write_bytes(b"x" * 50000)
        with patch("urllib.request.urlopen", return_value=FakeResponse(b"short")):
            assert executor.execute(download_step(output), make_context()).success

        assert output.read_bytes() == b"short"

    def test_variables_resolved(self, executor, make_context, session_dir):
        """Test Url and Output are variable-resolved."""
        step = download_step("$(SessionDir)/fw.bin", url="https://$(Host)/fw.bin")
        with patch("urllib.request.urlopen", return_value=FakeResponse(PAYLOAD)) as mock_open:
            result = executor.execute(step, make_context(Host="mirror.example.com"))

        assert result.success
        assert mock_open.call_args[0][0] == "https://mirror.example.com/fw.bin"
        assert (session_dir / "fw.bin").read_bytes() == PAYLOAD

    def test_checksum_mismatch_exhausts_retries(self, executor, sleeps, make_context, tmp_path):
        """Test a persistent mismatch re-downloads every attempt and fails with a verification error."""
        output = tmp_path / "fw.bin"
        with patch("urllib.request.urlopen", side_effect=lambda *a, **k: FakeResponse(PAYLOAD)) as mock_open:
            result = executor.execute(download_step(output, checksum="MD5:" + "0" * 32, retry_count=3), make_context())

        assert not result.success
        assert result.error.kind == ErrorKind.VERIFICATION
        assert mock_open.call_count == 3
        assert sleeps == [2.0, 4.0]

    def test_transport_failures_then_success(self, executor, sleeps, make_context, tmp_path):
        """Test two transport errors followed by a verified download succeed."""
        output = tmp_path / "fw.bin"
        digest = hashlib.sha1(PAYLOAD).hexdigest()
        responses = [
            urllib.error.URLError("connection refused"),
            urllib.error.URLError("timed out"),
            FakeResponse(PAYLOAD),
        ]
        with patch("urllib.request.urlopen", side_effect=responses) as mock_open:
            result = executor.execute(download_step(output, checksum=f"SHA1:{digest}", retry_count=3), make_context())

        assert result.success
        assert mock_open.call_count == 3
        assert sleeps == [2.0, 4.0]
        assert output.read_bytes() == PAYLOAD

    def test_transport_failure_exhausted(self, executor, sleeps, make_context, tmp_path):
        """Test persistent transport errors fail with a network error."""
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")) as mock_open:
            result = executor.execute(download_step(tmp_path / "fw.bin", retry_count=2), make_context())

        assert not result.success
        assert result.error.kind == ErrorKind.NETWORK
        assert "down" in result.error.message
        assert mock_open.call_count == 2
        assert sleeps == [2.0]

    def test_truncated_body_is_network_error(self, executor, make_context, tmp_path):
        """Test fewer bytes than Content-Length is treated as a transport failure."""
        with patch("urllib.request.urlopen", side_effect=lambda *a, **k: FakeResponse(b"abc", content_length=10)):
            result = executor.execute(download_step(tmp_path / "fw.bin", retry_count=1), make_context())

        assert not result.success
        assert result.error.kind == ErrorKind.NETWORK

    def test_progress_reported_per_megabyte(self, executor, make_context, tmp_path, console_buffer):
        """Test progress lines are emitted for large downloads."""
        body = b"\0" * (2 * 1024 * 1024)
        with patch("urllib.request.urlopen", return_value=FakeResponse(body)):
            assert executor.execute(download_step(tmp_path / "big.bin"), make_context()).success

        assert console_buffer.getvalue().count("[PROGRESS]") == 2

    def test_missing_url(self, executor, make_context, tmp_path):
        """Test a missing Url is a configuration error without any request."""
        step = Step(type="Download", name="fetch", params={"Output": str(tmp_path / "x")})
        with patch("urllib.request.urlopen") as mock_open:
            result = executor.execute(step, make_context())

        assert not result.success
        assert result.error.kind == ErrorKind.CONFIGURATION
        mock_open.assert_not_called()

    def test_missing_output(self, executor, make_context):
        """Test a missing Output is a configuration error."""
        step = Step(type="Download", name="fetch", params={"Url": "https://example.com"})
        result = executor.execute(step, make_context())

        assert not result.success
        assert result.error.kind == ErrorKind.CONFIGURATION

    def test_malformed_checksum_not_retried(self, executor, make_context, tmp_path):
        """Test a malformed checksum fails before downloading."""
        with patch("urllib.request.urlopen") as mock_open:
            result = executor.execute(download_step(tmp_path / "x", checksum="bogus"), make_context())

        assert not result.success
        assert result.error.kind == ErrorKind.CONFIGURATION
        mock_open.assert_not_called()


class RawHTTPServer:
    """Local socket answering every connection with a fixed raw response."""

    def __init__(self, response: bytes):
        self.response = response
        self.connections = 0
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(5)
        self._sock.settimeout(5)
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self._sock.getsockname()[1]}/fw.bin"

    def _serve(self):
        while True:
            try:
                conn, _ = self._sock.accept()
            except OSError:
                return
            with conn:
                self.connections += 1
                conn.settimeout(5)
                request = b""
                while b"\r\n\r\n" not in request:
                    chunk = conn.recv(4096)
                    if not chunk:
                        break
                    request += chunk
                conn.sendall(self.response)

    def close(self):
        self._sock.close()
        self._thread.join(timeout=5)


@pytest.fixture
def raw_server():
    servers = []

    def _start(response: bytes) -> RawHTTPServer:
        server = RawHTTPServer(response)
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.close()


class TestProtocolErrors:
    """Tests for malformed HTTP responses from a real socket."""

    def test_truncated_chunked_body(self, executor, sleeps, make_context, tmp_path, raw_server):
        """Test a chunked body cut off mid-chunk is a retried network failure."""
        server = raw_server(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n100\r\nabc")
        step = download_step(tmp_path / "fw.bin", url=server.url, retry_count=2)

        result = executor.execute(step, make_context())

        assert not result.success
        assert result.error.kind == ErrorKind.NETWORK
        assert server.connections == 2
        assert sleeps == [2.0]

    def test_bad_status_line(self, executor, make_context, tmp_path, raw_server):
        """Test a garbage status line is a network failure."""
        server = raw_server(b"GARBAGE\r\n")
        step = download_step(tmp_path / "fw.bin", url=server.url, retry_count=1)

        result = executor.execute(step, make_context())

        assert not result.success
        assert result.error.kind == ErrorKind.NETWORK

    def test_protocol_error_then_success(self, executor, make_context, tmp_path):
        """Test an HTTP protocol error on the first attempt is retried."""
        output = tmp_path / "fw.bin"
        responses = [http.client.BadStatusLine("GARBAGE"), FakeResponse(PAYLOAD)]
        with patch("urllib.request.urlopen", side_effect=responses) as mock_open:
            result = executor.execute(download_step(output, retry_count=2), make_context())

        assert result.success
        assert mock_open.call_count == 2
        assert output.read_bytes() == PAYLOAD
