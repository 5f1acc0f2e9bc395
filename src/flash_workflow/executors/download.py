"""
Download executor - HTTP downloads with retry and checksum verification.

Each attempt re-downloads the whole file; a checksum mismatch is retried
exactly like a transport error.
"""

from __future__ import annotations

import hashlib
import http.client
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from ..constants import (
    DEFAULT_RETRY_COUNT,
    DOWNLOAD_BACKOFF_MS,
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_TIMEOUT_SECONDS,
    PROGRESS_INTERVAL_BYTES,
    STEP_DOWNLOAD,
)
from ..errors import ConfigurationError, NetworkError, VerificationError, WorkflowError, WorkflowIOError
from ..workflow.models import StepResult
from .base import failure_from, require_param

if TYPE_CHECKING:
    from ..log import WorkflowLogger
    from ..workflow.models import ExecutionContext, Step

HASH_ALGORITHMS = {
    "MD5": hashlib.md5,
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
}


def parse_checksum(declaration: str) -> tuple[str, str]:
    """
    Parse an ``ALGORITHM:hexdigest`` checksum declaration.

    Returns:
        Tuple of (upper-case algorithm, lower-case digest)

    Raises:
        ConfigurationError: Malformed declaration or unsupported algorithm
    """
    parts = declaration.split(":")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise ConfigurationError(f"Invalid checksum format: {declaration} (expected ALGORITHM:hexdigest)")

    algorithm = parts[0].strip().upper()
    if algorithm not in HASH_ALGORITHMS:
        raise ConfigurationError(f"Unsupported checksum algorithm: {algorithm}")
    return algorithm, parts[1].strip().lower()


def file_digest(path: Path, algorithm: str, chunk_size: int = DOWNLOAD_CHUNK_SIZE) -> str:
    """Compute the lower-case hex digest of a file."""
    digest = HASH_ALGORITHMS[algorithm]()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def parse_retry_count(value: str | None, default: int = DEFAULT_RETRY_COUNT) -> int:
    if value is None or not value.strip():
        return default
    try:
        count = int(value)
    except ValueError as e:
        raise ConfigurationError(f"RetryCount must be an integer, got {value!r}") from e
    if count < 1:
        raise ConfigurationError(f"RetryCount must be at least 1, got {count}")
    return count


class DownloadExecutor:
    """
    Executor for ``Download`` steps.

    Parameters: Url, Output, optional Checksum and RetryCount.
    """

    step_type = STEP_DOWNLOAD

    def __init__(
        self,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
        backoff_ms: int = DOWNLOAD_BACKOFF_MS,
        retry_count: int = DEFAULT_RETRY_COUNT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the executor.

        Args:
            timeout: Socket timeout per attempt in seconds
            chunk_size: Bytes read per chunk while streaming
            backoff_ms: Base delay between attempts, multiplied by the attempt number
            retry_count: Attempts made when a step does not set RetryCount
            sleep: Sleep function (replaceable in tests)
        """
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.backoff_ms = backoff_ms
        self.retry_count = retry_count
        self.sleep = sleep

    def execute(self, step: Step, context: ExecutionContext) -> StepResult:
        try:
            return self._download(step, context)
        except (WorkflowError, OSError) as e:
            return failure_from(e, context, step, "Download failed")

    def _download(self, step: Step, context: ExecutionContext) -> StepResult:
        log = context.logger
        url = require_param(step, context, "Url", "Download")
        output = Path(require_param(step, context, "Output", "Download"))
        checksum_spec = context.resolve(step.get("Checksum"))
        checksum = parse_checksum(checksum_spec) if checksum_spec else None
        retry_count = parse_retry_count(step.get("RetryCount"), self.retry_count)

        output.parent.mkdir(parents=True, exist_ok=True)

        log.info(f"Downloading: {url}", step.name)
        log.info(f"Output path: {output}", step.name)

        last_error: WorkflowError | None = None
        for attempt in range(1, retry_count + 1):
            if attempt > 1:
                log.info(f"Retrying download ({attempt}/{retry_count})", step.name)
            try:
                size = self._fetch(url, output, step.name, log)
                if checksum:
                    self._verify(output, checksum, step.name, log)
                log.success(f"Download complete: {output.name} ({size} bytes)", step.name)
                return StepResult.ok(output=str(output))
            except WorkflowError as e:
                last_error = e
                log.warning(f"Download failed (attempt {attempt}/{retry_count}): {e}", step.name)
                if attempt < retry_count:
                    self.sleep(self.backoff_ms * attempt / 1000)

        log.error(f"Download failed after {retry_count} attempts: {last_error}", step.name)
        return StepResult.failed(last_error.to_step_error())

    def _fetch(self, url: str, output: Path, step_name: str, log: WorkflowLogger) -> int:
        """Stream the response body into output, truncating any existing file."""
        try:
            response = urllib.request.urlopen(url, timeout=self.timeout)
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

        with response:
            length = response.headers.get("Content-Length") if response.headers else None
            total = int(length) if length and length.isdigit() else 0
            received = 0
            next_report = PROGRESS_INTERVAL_BYTES

            try:
                f = open(output, "wb")
            except OSError as e:
                raise WorkflowIOError(f"Cannot write {output}: {e}") from e

            with f:
                while True:
                    try:
                        chunk = response.read(self.chunk_size)
                    except (http.client.HTTPException, OSError) as e:
                        raise NetworkError(f"Connection error while downloading {url}: {e}") from e
                    if not chunk:
                        break
                    try:
                        f.write(chunk)
                    except OSError as e:
                        raise WorkflowIOError(f"Cannot write {output}: {e}") from e
                    received += len(chunk)

                    if total > 0 and received >= next_report:
                        megabytes = received // PROGRESS_INTERVAL_BYTES
                        log.progress(step_name, received * 100 // total, f"Downloaded: {megabytes}MB")
                        next_report += PROGRESS_INTERVAL_BYTES

        if total > 0 and received < total:
            raise NetworkError(f"Incomplete download from {url}: {received} of {total} bytes")
        return received

    def _verify(self, path: Path, checksum: tuple[str, str], step_name: str, log: WorkflowLogger) -> None:
        algorithm, expected = checksum
        log.info(f"Verifying checksum ({algorithm}): {expected}", step_name)
        try:
            actual = file_digest(path, algorithm, self.chunk_size)
        except OSError as e:
            raise WorkflowIOError(f"Cannot read {path} for verification: {e}") from e
        if actual != expected:
            raise VerificationError(f"Checksum mismatch, expected: {expected}, actual: {actual}")
        log.success("Checksum verified", step_name)
