"""
Typed records decoded from raw data blocks.

The meaning of Channel and Unit depends on the block type:
  * spike (1): 1-based DSP channel, unit 0 = unsorted, 1-4 = sorted units a-d
  * event (4): 1-based event channel, Unit is the strobed word on the
    strobed channel and 0 elsewhere
  * A/D (5): 0-based slow channel, one waveform of samples expected
"""

import logging
from collections import namedtuple

import numpy as np

logger = logging.getLogger(__name__)

SPIKE_BLOCK_TYPE = 1
EVENT_BLOCK_TYPE = 4
AD_BLOCK_TYPE = 5

STROBED_EVENT_CHANNEL = 257
START_EVENT_CHANNEL = 258
STOP_EVENT_CHANNEL = 259


SpikeRecord = namedtuple("SpikeRecord", ["timestamp", "channel", "unit", "waveforms"])

EventRecord = namedtuple("EventRecord", ["timestamp", "channel", "unit", "strobed_value"])

UnknownRecord = namedtuple("UnknownRecord", ["block"])


class ADSampleBlockRecord(namedtuple("ADSampleBlockRecord", ["timestamp", "channel", "samples", "n_waveforms"])):
    __slots__ = ()

    @property
    def is_anomalous(self):
        return self.n_waveforms != 1


def _spike_record(block):
    waveforms = None
    if block.samples is not None:
        waveforms = block.samples.reshape(block.n_waveforms, block.n_words)
    return SpikeRecord(block.timestamp, block.channel, block.unit, waveforms)


def _event_record(block):
    if block.channel == STROBED_EVENT_CHANNEL:
        return EventRecord(block.timestamp, block.channel, block.unit, block.unit)
    return EventRecord(block.timestamp, block.channel, 0, None)


def _ad_record(block):
    if block.n_waveforms != 1:
        logger.warning(
            f"A/D block at offset {block.offset} (channel {block.channel}) "
            f"has {block.n_waveforms} waveforms, expected 1"
        )
    samples = block.samples
    if samples is None:
        samples = np.zeros(0, dtype="int16")
    return ADSampleBlockRecord(block.timestamp, block.channel, samples, block.n_waveforms)


_decoder_by_type = {
    SPIKE_BLOCK_TYPE: _spike_record,
    EVENT_BLOCK_TYPE: _event_record,
    AD_BLOCK_TYPE: _ad_record,
}


def classify(block):
    """
    Turn a :class:`plxio.rawio.datablocks.DataBlock` into a
    SpikeRecord, EventRecord or ADSampleBlockRecord.
    Unrecognized block types are kept as UnknownRecord.
    """
    decoder = _decoder_by_type.get(block.type)
    if decoder is None:
        logger.debug(f"Unknown block type {block.type} at offset {block.offset}")
        return UnknownRecord(block)
    return decoder(block)


def decode_blocks(blocks):
    for block in blocks:
        yield classify(block)
