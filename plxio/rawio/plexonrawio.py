"""
Class for reading the old data format from Plexon
acquisition system (.plx)

Note that Plexon now use a new format PL2 which is NOT
supported by this IO.

Compatible with versions 100 to 106.
Other versions have not been tested.

The file is a global header, three channel header tables and then
a flat sequence of data blocks of variable size. There is no index
of the blocks in the file: every query walks the data blocks from the
start, unless `build_index()` was called, in which case all blocks are
decoded once and queries are answered from memory.

"""

import os

import numpy as np

from plxio.errors import PlxReadError, TruncatedBlockError

from .baserawio import BaseRawIO
from .conversion import ad_gain_factor, spike_gain_factor, spike_voltage, ticks_to_seconds
from .datablocks import DataBlockStream
from .plexonheaders import find_channel_header, parse_channel_headers, parse_global_header, summarize_counts
from .query import BlockIndex, extract_all, iter_records, select_events, select_spikes


class PlexonRawIO(BaseRawIO):
    extensions = ["plx"]
    rawmode = "one-file"

    def __init__(self, filename="", progress_bar=True):
        """

        Class for reading non-pl2 plexon files

        Parameters
        ----------
        filename: str, Path or binary file, default: ''
            The *.plx file to be loaded. An already opened binary file
            is used as is and is not closed by `close()`.
        progress_bar: bool, default True
            Display progress bar using tqdm when indexing the data blocks.

        Notes
        -----
        * Compatible with versions 100 to 106. Other versions have not been tested.
        * Note that Plexon now use a new format PL2 which is NOT supported by this IO.

        Examples
        --------
        >>> import plxio.rawio
        >>> r = plxio.rawio.PlexonRawIO(filename='data.plx')
        >>> r.parse_header()
        >>> print(r)
        >>> spikes = r.get_spike_records(channel=1, unit=1)

        """
        BaseRawIO.__init__(self)
        self.filename = filename
        self.progress_bar = progress_bar
        self._fid = None
        self._own_fid = False
        self._index = None
        self.truncated_at = None

    def _source_name(self):
        if hasattr(self.filename, "read"):
            return getattr(self.filename, "name", repr(self.filename))
        return os.fspath(self.filename)

    def _open(self):
        if self._fid is None:
            if hasattr(self.filename, "read"):
                self._fid = self.filename
                self._own_fid = False
            else:
                self._fid = open(self.filename, "rb")
                self._own_fid = True
        return self._fid

    def _parse_header(self):
        fid = self._open()
        global_header = parse_global_header(fid)
        dsp_headers, event_headers, slow_headers = parse_channel_headers(fid, global_header)

        self.header = {
            "global_header": global_header,
            "dsp_channels": dsp_headers,
            "event_channels": event_headers,
            "slow_channels": slow_headers,
            "data_start_offset": global_header["data_start_offset"],
            "rec_datetime": global_header["rec_datetime"],
            "plexon_version": global_header["Version"],
        }
        self._index = None
        self.truncated_at = None

    @property
    def master_frequency(self):
        self._check_header_parsed()
        return self.header["global_header"]["ADFrequency"]

    def close(self):
        if self._fid is not None and self._own_fid:
            self._fid.close()
        self._fid = None

    def __enter__(self):
        if not self.is_header_parsed:
            try:
                self.parse_header()
            except BaseException:
                self.close()
                raise
        return self

    def __exit__(self, *exc):
        self.close()

    # channel headers
    def get_dsp_channel_header(self, channel):
        self._check_header_parsed()
        return find_channel_header(self.header["dsp_channels"], channel)

    def get_event_channel_header(self, channel):
        self._check_header_parsed()
        return find_channel_header(self.header["event_channels"], channel)

    def get_slow_channel_header(self, channel):
        self._check_header_parsed()
        return find_channel_header(self.header["slow_channels"], channel)

    def get_header_counts(self):
        self._check_header_parsed()
        return summarize_counts(self.header["global_header"])

    def get_waveform_gain(self, channel):
        """Volts per raw unit for the waveforms of a DSP channel, version aware."""
        return spike_gain_factor(self.header["global_header"], self.get_dsp_channel_header(channel))

    def get_signal_gain(self, channel):
        """Volts per raw unit for an A/D channel, version aware."""
        return ad_gain_factor(self.header["global_header"], self.get_slow_channel_header(channel))

    # data blocks
    def data_blocks(self):
        """A new stream over the data blocks, positioned at the first block."""
        self._check_header_parsed()
        return DataBlockStream(self._open(), self.header["data_start_offset"])

    def iter_records(self):
        return iter_records(self.data_blocks())

    def build_index(self):
        """
        Decode all data blocks once. Later queries are served from
        memory instead of reading the file again.
        """
        self._index = BlockIndex(self.data_blocks(), progress_bar=self.progress_bar)
        self.truncated_at = self._index.truncated_at
        self.logger.debug(f"Indexed {self._index.block_count} data blocks")
        return self._index

    def _collect(self, records):
        result = []
        self.truncated_at = None
        try:
            for record in records:
                result.append(record)
        except TruncatedBlockError as e:
            self.logger.warning(f"{e}, returning the {len(result)} records read before")
            self.truncated_at = e.offset
        return result

    # spikes
    def get_spike_records(self, channel, unit):
        if self._index is not None:
            return self._index.spikes(channel, unit)
        return self._collect(select_spikes(self.data_blocks(), channel, unit))

    def get_spike_timestamps(self, channel, unit):
        records = self.get_spike_records(channel, unit)
        return np.array([r.timestamp for r in records], dtype="uint64")

    def get_spike_times(self, channel, unit):
        return ticks_to_seconds(self.get_spike_timestamps(channel, unit), self.master_frequency)

    def get_spike_waveforms(self, channel, unit, gain=None):
        """
        Waveforms in volts of the spikes that have one, shape
        (nb_spike, nb_waveform, nb_sample). `gain` defaults to the
        DSP channel header gain.

        Raises PlxReadError when the spikes of this channel and unit do not
        all have the same (nb_waveform, nb_sample) shape; use
        :meth:`get_spike_records` to read them one by one in that case.
        """
        if gain is None:
            gain = self.get_dsp_channel_header(channel)["Gain"]
        waveforms = [r.waveforms for r in self.get_spike_records(channel, unit) if r.waveforms is not None]
        if len(waveforms) == 0:
            nb_sample = self.header["global_header"]["NumPointsWave"]
            return np.zeros((0, 1, nb_sample), dtype="float64")
        shapes = sorted({w.shape for w in waveforms})
        if len(shapes) > 1:
            raise PlxReadError(
                f"Spikes of channel {channel} unit {unit} have different waveform shapes {shapes}, "
                "they cannot be stacked in one array"
            )
        return spike_voltage(np.stack(waveforms), gain)

    # events
    def get_event_records(self, channel):
        if self._index is not None:
            return self._index.events(channel)
        return self._collect(select_events(self.data_blocks(), channel))

    def get_event_times(self, channel):
        records = self.get_event_records(channel)
        return ticks_to_seconds([r.timestamp for r in records], self.master_frequency)

    # signals
    def _continuous_calibration(self, channel, gain, channel_frequency):
        if gain is None or channel_frequency is None:
            slow_header = self.get_slow_channel_header(channel)
            if gain is None:
                gain = slow_header["Gain"]
            if channel_frequency is None:
                channel_frequency = slow_header["ADFreq"]
        return gain, channel_frequency

    def get_continuous(self, channel, gain=None, channel_frequency=None):
        """
        Timestamps (ticks) and voltages of all samples of A/D channel `channel`
        (0-based). Gain and sampling rate default to the values of the slow
        channel header with that channel id.
        """
        gain, channel_frequency = self._continuous_calibration(channel, gain, channel_frequency)
        if self._index is not None:
            return self._index.continuous(channel, gain, channel_frequency, self.master_frequency)
        results = self.extract(continuous=[(channel, gain, channel_frequency)])
        return results["continuous"][channel]

    def extract(self, spikes=(), events=(), continuous=()):
        """
        Several queries in one pass, see :func:`plxio.rawio.query.extract_all`.
        `continuous` items are (channel, gain, channel_frequency) or just a
        channel, in which case the slow channel header values are used.
        """
        calibrated = []
        for item in continuous:
            if np.isscalar(item):
                item = (item, None, None)
            channel, gain, channel_frequency = item
            calibrated.append((channel,) + self._continuous_calibration(channel, gain, channel_frequency))
        results = extract_all(
            self.data_blocks(),
            spikes=spikes,
            events=events,
            continuous=calibrated,
            master_frequency=self.master_frequency,
        )
        self.truncated_at = results["truncated_at"]
        return results
