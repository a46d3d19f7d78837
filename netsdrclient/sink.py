"""Destinations for I/Q samples extracted from data-item datagrams."""

import queue
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np

from .common import log
from .models import SampleBlock


@runtime_checkable
class SampleSink(Protocol):
    def write(self, sequence_number: int, samples: Sequence[int]) -> None:
        ...


class SampleFileSink:
    """
    Appends every sample to a binary file as little-endian int16, the layout
    of the ``samples.bin`` capture written by the reference client.
    Wider samples are truncated to their low 16 bits.
    """

    def __init__(self, path: Union[str, Path] = "samples.bin"):
        self.path = Path(path)
        self._fh = None
        self.sample_count = 0

    def write(self, sequence_number: int, samples: Sequence[int]):
        if self._fh is None:
            self._fh = open(self.path, "ab")
            log.info(f"Writing samples to {self.path}")
        data = np.asarray(samples, dtype=np.int64).astype("<i2")
        data.tofile(self._fh)
        self.sample_count += len(data)

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class SampleQueueSink:
    """Delivers SampleBlock objects to a queue for downstream processing."""

    def __init__(self, output_queue: Optional[queue.Queue] = None, maxsize: int = 500):
        self.out_q      = output_queue or queue.Queue(maxsize=maxsize)
        self.drop_count = 0

    def write(self, sequence_number: int, samples: Sequence[int]):
        block = SampleBlock(sequence_number, np.asarray(samples, dtype=np.int32))
        try:
            self.out_q.put_nowait(block)
        except queue.Full:
            self.drop_count += 1
            log.warning(f"Sample queue full, dropping block {sequence_number} "
                        f"(total drops: {self.drop_count})")

    def get_samples(self, timeout: float = 1.0) -> Optional[SampleBlock]:
        """Block until a sample block arrives or timeout. Returns None on timeout."""
        try:
            return self.out_q.get(timeout=timeout)
        except queue.Empty:
            return None
