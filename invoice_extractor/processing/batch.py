"""
Sequential batch processing of uploaded invoices.

Files are extracted strictly one at a time, in upload order. Consecutive
extraction calls are spaced out by a pacer:

- FixedPause: an unconditional pause between files (default)
- TokenBucket: smooth requests-per-minute limit with a small burst

The first failing file aborts the whole batch; nothing computed so far is
returned.
"""

import logging
import time
from typing import Callable, List, Optional, Protocol, Sequence

from invoice_extractor.config import BatchConfig, PacingMode
from invoice_extractor.llm.extractor import InvoiceExtractor, InvoiceFile
from invoice_extractor.models.invoice import InvoiceRecord

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class BatchFailedError(Exception):
    """Extraction of one file failed, so the whole batch is abandoned."""

    def __init__(self, file_name: str, index: int, cause: Exception):
        self.file_name = file_name
        self.index = index
        self.cause = cause
        super().__init__(f"Extraction failed for file #{index + 1} ({file_name}): {cause}")


class Pacer(Protocol):
    def wait(self, index: int) -> None:
        """Block until the extraction call for file ``index`` may start."""
        ...


class FixedPause:
    """Waits a fixed number of seconds before every file except the first."""

    def __init__(self, seconds: float = 1.0, sleep: Callable[[float], None] = time.sleep):
        self.seconds = seconds
        self._sleep = sleep

    def wait(self, index: int) -> None:
        if index > 0 and self.seconds > 0:
            self._sleep(self.seconds)


class TokenBucket:
    """
    Token bucket limiter: ``rate_per_minute`` tokens refill continuously up to
    ``burst``; each file consumes one token and waits while the bucket is empty.
    """

    def __init__(
        self,
        rate_per_minute: int = 15,
        burst: int = 1,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        if rate_per_minute <= 0:
            raise ValueError("rate_per_minute must be positive")
        self.rate_per_second = rate_per_minute / 60
        self.burst = max(burst, 1)
        self._sleep = sleep
        self._monotonic = monotonic
        self._tokens = float(self.burst)
        self._last_update = monotonic()

    def _refill_tokens(self) -> None:
        now = self._monotonic()
        elapsed = now - self._last_update
        self._last_update = now
        self._tokens = min(self.burst, self._tokens + elapsed * self.rate_per_second)

    def wait(self, index: int) -> None:
        self._refill_tokens()
        while self._tokens < 1:
            wait_time = (1 - self._tokens) / self.rate_per_second
            logger.debug(f"Rate limited, waiting {wait_time:.2f}s")
            self._sleep(wait_time)
            self._refill_tokens()
        self._tokens -= 1


def create_pacer(config: BatchConfig) -> Pacer:
    """Build the pacer selected in the batch configuration."""
    if config.pacing == PacingMode.TOKEN_BUCKET:
        return TokenBucket(config.rate_per_minute, config.burst_size)
    return FixedPause(config.delay_seconds)


class BatchProcessor:
    """Runs an InvoiceExtractor over a batch of files, one file at a time."""

    def __init__(self, extractor: InvoiceExtractor, pacer: Optional[Pacer] = None):
        self.extractor = extractor
        self.pacer = pacer or FixedPause()

    def process(
        self,
        files: Sequence[InvoiceFile],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[InvoiceRecord]:
        """
        Extract every file in order.

        Args:
            files: Uploaded files, in upload order
            on_progress: Called as ``(done, total, file_name)`` after each file

        Returns:
            One record per file, in input order

        Raises:
            BatchFailedError: On the first file whose extraction fails
        """
        total = len(files)
        records: List[InvoiceRecord] = []

        for index, file in enumerate(files):
            self.pacer.wait(index)
            logger.info(f"Processing file {index + 1}/{total}: {file.name}")
            try:
                record = self.extractor.extract(file)
            except Exception as e:
                raise BatchFailedError(file.name, index, e) from e

            records.append(record)
            if on_progress:
                on_progress(index + 1, total, file.name)

        logger.info(f"Batch complete: {len(records)} invoice(s) extracted")
        return records
