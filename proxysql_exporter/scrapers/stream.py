"""
Thread-safe outbound sample stream.
"""
import threading
from typing import Iterable, Iterator, List

from proxysql_exporter.models.metric import MetricSample


class SampleStream:
    """
    Ordered, append-only collection of samples for one scrape cycle.

    Writers may run on different threads; every write is serialised by an
    internal lock. Once closed, the stream rejects further writes and can be
    iterated safely.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: List[MetricSample] = []
        self._closed = False

    def emit(self, sample: MetricSample) -> None:
        with self._lock:
            self._check_open()
            self._samples.append(sample)

    def extend(self, samples: Iterable[MetricSample]) -> None:
        """Append a batch of samples atomically, keeping them contiguous."""
        batch = list(samples)
        with self._lock:
            self._check_open()
            self._samples.extend(batch)

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def samples(self) -> List[MetricSample]:
        with self._lock:
            return list(self._samples)

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("sample stream is closed")

    def __iter__(self) -> Iterator[MetricSample]:
        return iter(self.samples())

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
