"""
Tests for sample sinks (netsdrclient/sink.py).
"""
import numpy as np

from netsdrclient.sink import SampleFileSink, SampleQueueSink, SampleSink


class TestSampleFileSink:

    def test_writes_little_endian_int16(self, tmp_path):
        path = tmp_path / "samples.bin"
        with SampleFileSink(path) as sink:
            sink.write(0, [0x10, 0x20, -1])

        assert path.read_bytes() == b"\x10\x00\x20\x00\xff\xff"

    def test_appends_across_writes_and_sessions(self, tmp_path):
        path = tmp_path / "samples.bin"
        with SampleFileSink(path) as sink:
            sink.write(0, np.array([1, 2], dtype=np.int32))
            sink.write(1, np.array([3], dtype=np.int32))
            assert sink.sample_count == 3
        with SampleFileSink(path) as sink:
            sink.write(2, [4])

        assert np.fromfile(path, dtype="<i2").tolist() == [1, 2, 3, 4]

    def test_wide_samples_keep_low_16_bits(self, tmp_path):
        path = tmp_path / "samples.bin"
        with SampleFileSink(path) as sink:
            sink.write(0, [0x030201])

        assert path.read_bytes() == b"\x01\x02"

    def test_no_file_until_first_write(self, tmp_path):
        path = tmp_path / "samples.bin"
        sink = SampleFileSink(path)
        sink.close()
        assert not path.exists()


class TestSampleQueueSink:

    def test_delivers_blocks(self):
        sink = SampleQueueSink()
        sink.write(9, [1, 2, 3])

        block = sink.get_samples(timeout=0.1)
        assert block.sequence_number == 9
        assert block.samples.dtype == np.int32
        assert block.samples.tolist() == [1, 2, 3]

    def test_timeout_returns_none(self):
        assert SampleQueueSink().get_samples(timeout=0.01) is None

    def test_drops_when_full(self):
        sink = SampleQueueSink(maxsize=1)
        sink.write(0, [1])
        sink.write(1, [2])

        assert sink.drop_count == 1
        assert sink.get_samples(timeout=0.1).sequence_number == 0


def test_sinks_satisfy_sample_sink(tmp_path):
    assert isinstance(SampleFileSink(tmp_path / "samples.bin"), SampleSink)
    assert isinstance(SampleQueueSink(), SampleSink)
