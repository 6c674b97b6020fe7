"""
Tests of plxio.rawio.records
"""

import unittest

import numpy as np

from plxio.rawio.datablocks import DataBlock
from plxio.rawio.records import (
    AD_BLOCK_TYPE,
    EVENT_BLOCK_TYPE,
    SPIKE_BLOCK_TYPE,
    START_EVENT_CHANNEL,
    STOP_EVENT_CHANNEL,
    STROBED_EVENT_CHANNEL,
    ADSampleBlockRecord,
    EventRecord,
    SpikeRecord,
    UnknownRecord,
    classify,
    decode_blocks,
)


def make_block(bl_type, channel, unit=0, samples=None, n_waveforms=None, n_words=None, timestamp=1000):
    if samples is not None:
        samples = np.asarray(samples, dtype="int16")
        if n_waveforms is None:
            n_waveforms = 1
        if n_words is None:
            n_words = samples.size // n_waveforms
    return DataBlock(
        offset=7504,
        type=bl_type,
        timestamp=timestamp,
        channel=channel,
        unit=unit,
        n_waveforms=n_waveforms or 0,
        n_words=n_words or 0,
        samples=samples,
    )


class TestClassify(unittest.TestCase):
    def test_spike(self):
        record = classify(make_block(SPIKE_BLOCK_TYPE, 1, 1, [10, -10, 5]))
        self.assertIsInstance(record, SpikeRecord)
        self.assertEqual((record.timestamp, record.channel, record.unit), (1000, 1, 1))
        self.assertEqual(record.waveforms.shape, (1, 3))
        np.testing.assert_array_equal(record.waveforms[0], [10, -10, 5])

    def test_spike_several_waveforms(self):
        record = classify(make_block(SPIKE_BLOCK_TYPE, 2, 3, [1, 2, 3, 4, 5, 6], n_waveforms=2))
        np.testing.assert_array_equal(record.waveforms, [[1, 2, 3], [4, 5, 6]])

    def test_spike_without_waveform(self):
        record = classify(make_block(SPIKE_BLOCK_TYPE, 1, 0))
        self.assertIsNone(record.waveforms)
        self.assertEqual(record.unit, 0)

    def test_strobed_event(self):
        record = classify(make_block(EVENT_BLOCK_TYPE, STROBED_EVENT_CHANNEL, 42))
        self.assertIsInstance(record, EventRecord)
        self.assertEqual(record.strobed_value, 42)
        self.assertEqual(record.unit, 42)
        self.assertEqual(STROBED_EVENT_CHANNEL, 257)

    def test_plain_event(self):
        record = classify(make_block(EVENT_BLOCK_TYPE, 3, 42))
        self.assertIsInstance(record, EventRecord)
        self.assertIsNone(record.strobed_value)
        self.assertEqual(record.unit, 0)
        self.assertEqual(record.channel, 3)

    def test_start_stop_events(self):
        for channel in (START_EVENT_CHANNEL, STOP_EVENT_CHANNEL):
            record = classify(make_block(EVENT_BLOCK_TYPE, channel, 0))
            self.assertIsInstance(record, EventRecord)
            self.assertEqual(record.channel, channel)
            self.assertIsNone(record.strobed_value)
        self.assertEqual((START_EVENT_CHANNEL, STOP_EVENT_CHANNEL), (258, 259))

    def test_ad_block(self):
        record = classify(make_block(AD_BLOCK_TYPE, 0, 0, [4096, 0, -4096]))
        self.assertIsInstance(record, ADSampleBlockRecord)
        self.assertFalse(record.is_anomalous)
        np.testing.assert_array_equal(record.samples, [4096, 0, -4096])

    def test_ad_block_with_several_waveforms(self):
        block = make_block(AD_BLOCK_TYPE, 2, 0, [1, 2, 3, 4], n_waveforms=2)
        with self.assertLogs("plxio.rawio.records", level="WARNING"):
            record = classify(block)
        self.assertTrue(record.is_anomalous)
        self.assertEqual(record.n_waveforms, 2)
        # all samples are kept, not only the first waveform
        self.assertEqual(record.samples.size, 4)

    def test_ad_block_without_samples(self):
        with self.assertLogs("plxio.rawio.records", level="WARNING"):
            record = classify(make_block(AD_BLOCK_TYPE, 0))
        self.assertEqual(record.samples.size, 0)
        self.assertTrue(record.is_anomalous)

    def test_unknown_type(self):
        block = make_block(9, 1, 0, [1, 2])
        record = classify(block)
        self.assertIsInstance(record, UnknownRecord)
        self.assertIs(record.block, block)

    def test_decode_blocks_keeps_order(self):
        blocks = [
            make_block(EVENT_BLOCK_TYPE, 1, timestamp=1),
            make_block(9, 1, timestamp=2),
            make_block(SPIKE_BLOCK_TYPE, 1, 1, timestamp=3),
        ]
        records = list(decode_blocks(blocks))
        self.assertEqual([type(r) for r in records], [EventRecord, UnknownRecord, SpikeRecord])


if __name__ == "__main__":
    unittest.main()
