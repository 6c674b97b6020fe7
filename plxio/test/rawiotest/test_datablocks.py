"""
Tests of plxio.rawio.datablocks
"""

import io
import unittest

import numpy as np

from plxio.errors import PlxIOError, TruncatedBlockError
from plxio.rawio.datablocks import DATA_BLOCK_HEADER_SIZE, DataBlockStream, compose_timestamp
from plxio.rawio.records import AD_BLOCK_TYPE, EVENT_BLOCK_TYPE, SPIKE_BLOCK_TYPE
from plxio.test.rawiotest.tools import block_bytes, make_plx


class FailingFile(io.BytesIO):
    def read(self, *args):
        raise OSError("device not ready")


class TestDataBlockStream(unittest.TestCase):
    def setUp(self):
        self.blocks = [
            block_bytes(SPIKE_BLOCK_TYPE, 100, 1, 1, [[10, -10, 5]]),
            block_bytes(EVENT_BLOCK_TYPE, 150, 3),
            block_bytes(AD_BLOCK_TYPE, 200, 0, 0, [[1, 2, 3, 4]]),
            block_bytes(SPIKE_BLOCK_TYPE, 250, 1, 0),
        ]
        buf, self.data_start = make_plx(blocks=self.blocks)
        self.fid = io.BytesIO(buf)

    def test_header_size(self):
        self.assertEqual(DATA_BLOCK_HEADER_SIZE, 16)

    def test_iterate(self):
        stream = DataBlockStream(self.fid, self.data_start)
        blocks = list(stream)
        self.assertEqual([b.type for b in blocks], [1, 4, 5, 1])
        self.assertEqual([b.timestamp for b in blocks], [100, 150, 200, 250])
        self.assertEqual(blocks[0].offset, self.data_start)
        np.testing.assert_array_equal(blocks[0].samples, [10, -10, 5])
        self.assertEqual(blocks[0].samples.dtype, np.dtype("int16"))
        self.assertEqual(blocks[2].sample_count, 4)
        self.assertEqual(stream.tell(), self.data_start + sum(len(b) for b in self.blocks))

    def test_block_without_waveform(self):
        stream = DataBlockStream(self.fid, self.data_start)
        blocks = list(stream)
        for block in (blocks[1], blocks[3]):
            self.assertEqual(block.n_waveforms, 0)
            self.assertIsNone(block.samples)
            self.assertEqual(block.nbytes, DATA_BLOCK_HEADER_SIZE)
        self.assertEqual(blocks[2].offset - blocks[1].offset, DATA_BLOCK_HEADER_SIZE)
        self.assertEqual(stream.tell() - blocks[3].offset, DATA_BLOCK_HEADER_SIZE)

    def test_zero_waveform_ignores_words_field(self):
        # NumberOfWordsInWaveform is meaningless when there is no waveform
        block = block_bytes(SPIKE_BLOCK_TYPE, 5, 1, 1, n_words=32)
        buf, data_start = make_plx(blocks=[block, block])
        blocks = list(DataBlockStream(io.BytesIO(buf), data_start))
        self.assertEqual(len(blocks), 2)
        self.assertEqual(blocks[1].offset, data_start + DATA_BLOCK_HEADER_SIZE)

    def test_reset_gives_identical_passes(self):
        stream = DataBlockStream(self.fid, self.data_start)
        first = [(b.offset, b.type, b.timestamp) for b in stream]
        stream.reset()
        second = [(b.offset, b.type, b.timestamp) for b in stream]
        self.assertEqual(first, second)

    def test_iter_from_recorded_offset(self):
        stream = DataBlockStream(self.fid, self.data_start)
        offsets = [b.offset for b in stream]
        rest = list(stream.iter_from(offsets[2]))
        self.assertEqual([b.timestamp for b in rest], [200, 250])

    def test_data_size(self):
        stream = DataBlockStream(self.fid, self.data_start)
        self.assertEqual(stream.data_size(), sum(len(b) for b in self.blocks))
        self.assertEqual(stream.tell(), self.data_start)

    def test_unsigned_40_bits_timestamp(self):
        timestamp = (3 << 32) | 0xF0000000
        buf, data_start = make_plx(blocks=[block_bytes(EVENT_BLOCK_TYPE, timestamp, 1)])
        block = next(iter(DataBlockStream(io.BytesIO(buf), data_start)))
        self.assertEqual(block.timestamp, timestamp)
        self.assertEqual(compose_timestamp(0, 2**31 + 1), 2**31 + 1)
        self.assertEqual(compose_timestamp(1, 0), 2**32)

    def test_truncated_payload(self):
        last = block_bytes(SPIKE_BLOCK_TYPE, 300, 1, 1, [[1, 2, 3, 4, 5, 6]])
        buf, data_start = make_plx(blocks=self.blocks + [last])
        buf = buf[:-4]
        stream = DataBlockStream(io.BytesIO(buf), data_start)
        received = []
        with self.assertRaises(TruncatedBlockError) as cm:
            for block in stream:
                received.append(block)
        self.assertEqual([b.timestamp for b in received], [100, 150, 200, 250])
        self.assertEqual(cm.exception.offset, data_start + sum(len(b) for b in self.blocks))

    def test_truncated_header(self):
        buf, data_start = make_plx(blocks=self.blocks)
        buf += b"\x01\x00\x00"
        stream = DataBlockStream(io.BytesIO(buf), data_start)
        received = []
        with self.assertRaises(TruncatedBlockError):
            for block in stream:
                received.append(block)
        self.assertEqual(len(received), 4)

    def test_io_error_carries_offset(self):
        fid = FailingFile(b"")
        stream = DataBlockStream(fid, 7504)
        with self.assertRaises(PlxIOError) as cm:
            list(stream)
        self.assertEqual(cm.exception.offset, 7504)


if __name__ == "__main__":
    unittest.main()
