"""
Filtered extraction of records from a :class:`DataBlockStream`.

Three ways of getting the same results:
  * select_spikes / select_events / select_continuous: one lazy pass over
    the whole data section for each query
  * extract_all: one pass serving several queries at once
  * BlockIndex: decode everything once, then serve any number of queries
    from memory

In all cases records keep the file order, nothing is sorted.
"""

import heapq
import logging
from collections import defaultdict

import numpy as np
from tqdm import tqdm

from plxio.errors import MissingCalibrationError, TruncatedBlockError

from .conversion import check_gain, ad_voltage, reconstruct_continuous_timestamps, ticks_per_sample
from .records import (
    AD_BLOCK_TYPE,
    EVENT_BLOCK_TYPE,
    SPIKE_BLOCK_TYPE,
    ADSampleBlockRecord,
    EventRecord,
    SpikeRecord,
    classify,
    decode_blocks,
)

logger = logging.getLogger(__name__)


def iter_records(stream):
    """All decoded records from the start of the data section."""
    return decode_blocks(stream.iter_from())


def select_spikes(stream, channel, unit):
    for record in iter_records(stream):
        if isinstance(record, SpikeRecord) and record.channel == channel and record.unit == unit:
            yield record


def select_events(stream, channel):
    for record in iter_records(stream):
        if isinstance(record, EventRecord) and record.channel == channel:
            yield record


def _check_continuous_calibration(gain, channel_frequency, master_frequency):
    check_gain(gain)
    ticks_per_sample(master_frequency, channel_frequency)


def _continuous_arrays(record, gain, channel_frequency, master_frequency):
    timestamps = reconstruct_continuous_timestamps(record, None, master_frequency, channel_frequency)
    voltages = ad_voltage(record.samples, gain)
    return timestamps, voltages


def select_continuous(stream, channel, gain, channel_frequency, master_frequency):
    """
    (timestamp, voltage) pairs of every sample of the A/D channel `channel`.

    The calibration is checked when calling, so a zero gain or sampling
    frequency raises MissingCalibrationError before any read.
    """
    _check_continuous_calibration(gain, channel_frequency, master_frequency)

    def _iter_samples():
        for record in iter_records(stream):
            if isinstance(record, ADSampleBlockRecord) and record.channel == channel:
                timestamps, voltages = _continuous_arrays(record, gain, channel_frequency, master_frequency)
                yield from zip(timestamps.tolist(), voltages.tolist())

    return _iter_samples()


def _concatenate_continuous(chunks):
    if len(chunks) == 0:
        return np.zeros(0, dtype="uint64"), np.zeros(0, dtype="float64")
    timestamps = np.concatenate([ts for ts, _ in chunks])
    voltages = np.concatenate([v for _, v in chunks])
    return timestamps, voltages


def extract_all(stream, spikes=(), events=(), continuous=(), master_frequency=None):
    """
    Run several queries in a single pass over the data section.

    Parameters
    ----------
    stream: DataBlockStream
    spikes: iterable of (channel, unit)
    events: iterable of event channels
    continuous: iterable of (channel, gain, channel_frequency)
    master_frequency: int
        Tick frequency, required when `continuous` is not empty.

    Returns
    -------
    results: dict
        'spikes': {(channel, unit): [SpikeRecord, ...]}
        'events': {channel: [EventRecord, ...]}
        'continuous': {channel: (timestamps, voltages)}
        'truncated_at': offset of a truncated trailing block or None
    """
    spike_results = {(int(c), int(u)): [] for c, u in spikes}
    event_results = {int(c): [] for c in events}
    continuous = list(continuous)
    if len(continuous) > 0 and master_frequency is None:
        raise MissingCalibrationError("master_frequency is required to rebuild continuous sample times")
    calibrations = {}
    for channel, gain, channel_frequency in continuous:
        _check_continuous_calibration(gain, channel_frequency, master_frequency)
        calibrations[int(channel)] = (gain, channel_frequency)
    chunks = {c: [] for c in calibrations}

    truncated_at = None
    try:
        for record in iter_records(stream):
            if isinstance(record, SpikeRecord):
                key = (record.channel, record.unit)
                if key in spike_results:
                    spike_results[key].append(record)
            elif isinstance(record, EventRecord):
                if record.channel in event_results:
                    event_results[record.channel].append(record)
            elif isinstance(record, ADSampleBlockRecord):
                if record.channel in calibrations:
                    gain, channel_frequency = calibrations[record.channel]
                    chunks[record.channel].append(
                        _continuous_arrays(record, gain, channel_frequency, master_frequency)
                    )
    except TruncatedBlockError as e:
        logger.warning(f"{e}, keeping the records read before")
        truncated_at = e.offset

    return {
        "spikes": spike_results,
        "events": event_results,
        "continuous": {c: _concatenate_continuous(chunks[c]) for c in chunks},
        "truncated_at": truncated_at,
    }


class BlockIndex:
    """
    Every record of the data section decoded once and grouped by
    (block type, channel, unit), in file order.

    For events the unit is 0, except on the strobed channel where it is
    the strobed word. Unknown block types are kept in `unknown_records`.

    Parameters
    ----------
    stream: DataBlockStream
    progress_bar: bool, default False
        Display a tqdm progress bar while decoding.
    """

    def __init__(self, stream, progress_bar=False):
        self._records = defaultdict(list)
        self.unknown_records = []
        self.truncated_at = None
        self.block_count = 0

        if progress_bar:
            pbar = tqdm(total=stream.data_size(), initial=0, desc="Indexing data blocks", leave=True)

        blocks = stream.iter_from()
        try:
            for seq, block in enumerate(blocks):
                record = classify(block)
                if isinstance(record, SpikeRecord):
                    key = (SPIKE_BLOCK_TYPE, record.channel, record.unit)
                elif isinstance(record, EventRecord):
                    key = (EVENT_BLOCK_TYPE, record.channel, record.unit)
                elif isinstance(record, ADSampleBlockRecord):
                    key = (AD_BLOCK_TYPE, record.channel, 0)
                else:
                    key = None
                if key is None:
                    self.unknown_records.append(record)
                else:
                    self._records[key].append((seq, record))
                self.block_count += 1
                if progress_bar:
                    pbar.update(block.nbytes)
        except TruncatedBlockError as e:
            logger.warning(f"{e}, the index stops at the last complete block")
            self.truncated_at = e.offset
        finally:
            if progress_bar:
                pbar.close()

    def keys(self):
        return sorted(self._records.keys())

    def _merged(self, block_type, channel):
        lists = [v for (t, c, _), v in self._records.items() if t == block_type and c == channel]
        return [record for _, record in heapq.merge(*lists)]

    def records(self, block_type, channel, unit=None):
        if unit is None:
            return self._merged(block_type, channel)
        return [record for _, record in self._records.get((block_type, channel, unit), [])]

    def spikes(self, channel, unit):
        return self.records(SPIKE_BLOCK_TYPE, channel, unit)

    def events(self, channel):
        return self.records(EVENT_BLOCK_TYPE, channel)

    def continuous_blocks(self, channel):
        return self.records(AD_BLOCK_TYPE, channel, 0)

    def continuous(self, channel, gain, channel_frequency, master_frequency):
        """Concatenated (timestamps, voltages) arrays of one A/D channel."""
        _check_continuous_calibration(gain, channel_frequency, master_frequency)
        chunks = [
            _continuous_arrays(record, gain, channel_frequency, master_frequency)
            for record in self.continuous_blocks(channel)
        ]
        return _concatenate_continuous(chunks)
