"""
Binary layout of the plx global header and of the three channel header
tables, and the functions decoding them.

A plx file starts with one global header (7504 bytes) followed by
NumDSPChannels DSP channel headers, NumEventChannels event channel headers
and NumSlowChannels slow (A/D) channel headers, in that order.
The data blocks start right after the last slow channel header.

All structures are little endian and packed, they are described here as
numpy dtypes instead of relying on a compiler struct layout.

"""

import datetime
import io
import logging
from collections import OrderedDict

import numpy as np

from plxio.errors import CorruptHeaderError, TruncatedError, UnknownChannelError

logger = logging.getLogger(__name__)

PLX_MAGIC_NUMBER = 0x58454C50  # "PLEX"

# upper bound used to reject corrupted counts early
MAX_CHANNEL_COUNT = 4096

# the first 300 EVCounts entries are event channels, the rest A/D channels
EVENT_COUNTS_AD_START = 300


GlobalHeader = [
    ("MagicNumber", "<u4"),
    ("Version", "<i4"),
    ("Comment", "S128"),
    ("ADFrequency", "<i4"),
    ("NumDSPChannels", "<i4"),
    ("NumEventChannels", "<i4"),
    ("NumSlowChannels", "<i4"),
    ("NumPointsWave", "<i4"),
    ("NumPointsPreThr", "<i4"),
    ("Year", "<i4"),
    ("Month", "<i4"),
    ("Day", "<i4"),
    ("Hour", "<i4"),
    ("Minute", "<i4"),
    ("Second", "<i4"),
    ("FastRead", "<i4"),
    ("WaveformFreq", "<i4"),
    ("LastTimestamp", "<f8"),
    # version >103
    ("Trodalness", "u1"),
    ("DataTrodalness", "u1"),
    ("BitsPerSpikeSample", "u1"),
    ("BitsPerSlowSample", "u1"),
    ("SpikeMaxMagnitudeMV", "<u2"),
    ("SlowMaxMagnitudeMV", "<u2"),
    # version 105
    ("SpikePreAmpGain", "<u2"),
    # version 106
    ("AcquiringSoftware", "S18"),
    ("ProcessingSoftware", "S18"),
    ("Padding", "S10"),
    # all version
    ("TSCounts", "<i4", (130, 5)),
    ("WFCounts", "<i4", (130, 5)),
    ("EVCounts", "<i4", (512,)),
]  # 7504 bytes

DspChannelHeader = [
    ("Name", "S32"),
    ("SIGName", "S32"),
    ("Channel", "<i4"),
    ("WFRate", "<i4"),
    ("SIG", "<i4"),
    ("Ref", "<i4"),
    ("Gain", "<i4"),
    ("Filter", "<i4"),
    ("Threshold", "<i4"),
    ("Method", "<i4"),
    ("NUnits", "<i4"),
    ("Template", "<i2", (5, 64)),
    ("Fit", "<i4", (5,)),
    ("SortWidth", "<i4"),
    ("Boxes", "<i2", (5, 2, 4)),
    ("SortBeg", "<i4"),
    # version 105
    ("Comment", "S128"),
    # version 106
    ("SrcId", "u1"),
    ("reserved", "u1"),
    ("ChanId", "<u2"),
    ("Padding", "<i4", (10,)),
]  # 1020 bytes

EventChannelHeader = [
    ("Name", "S32"),
    ("Channel", "<i4"),
    # version 105
    ("Comment", "S128"),
    # version 106
    ("SrcId", "u1"),
    ("reserved", "u1"),
    ("ChanId", "<u2"),
    ("Padding", "<i4", (32,)),
]  # 296 bytes

SlowChannelHeader = [
    ("Name", "S32"),
    ("Channel", "<i4"),
    ("ADFreq", "<i4"),
    ("Gain", "<i4"),
    ("Enabled", "<i4"),
    ("PreampGain", "<i4"),
    # version 104
    ("SpikeChannel", "<i4"),
    # version 105
    ("Comment", "S128"),
    # version 106
    ("SrcId", "u1"),
    ("reserved", "u1"),
    ("ChanId", "<u2"),
    ("Padding", "<i4", (27,)),
]  # 296 bytes

GLOBAL_HEADER_SIZE = np.dtype(GlobalHeader).itemsize

# declared order of the channel tables, with the global header count field
channel_tables = [
    ("dsp", "NumDSPChannels", DspChannelHeader),
    ("event", "NumEventChannels", EventChannelHeader),
    ("slow", "NumSlowChannels", SlowChannelHeader),
]


def _as_file(source):
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(source)
    return source


def _read_exactly(fid, nbytes, what):
    offset = fid.tell()
    buf = fid.read(nbytes)
    if len(buf) < nbytes:
        raise TruncatedError(what, offset, nbytes, len(buf))
    return buf


def _clean_string(v):
    v = v.decode("latin-1")
    v = v.replace("\x03", "")
    v = v.replace("\x00", "")
    return v


def read_as_dict(fid, dtype, offset=None, what="structure"):
    """
    Given a file descriptor
    and a numpy.dtype of the binary struct return a dict.
    Make conversion for strings.
    """
    if offset is not None:
        fid.seek(offset)
    dt = np.dtype(dtype)
    h = np.frombuffer(_read_exactly(fid, dt.itemsize, what), dt)[0]
    return record_to_dict(h)


def record_to_dict(h):
    info = OrderedDict()
    for k in h.dtype.names:
        v = h[k]
        if h.dtype[k].kind == "S":
            v = _clean_string(v)
        info[k] = v.item() if isinstance(v, np.generic) else v
    return info


def _creation_datetime(header):
    try:
        return datetime.datetime(
            header["Year"],
            header["Month"],
            header["Day"],
            header["Hour"],
            header["Minute"],
            header["Second"],
        )
    except ValueError:
        logger.warning("Invalid creation date in plx header, rec_datetime set to None")
        return None


def parse_global_header(source):
    """
    Read the fixed size global header at offset 0.

    Parameters
    ----------
    source: bytes or binary file
        Either the raw bytes of the file (at least the header) or a
        seekable binary file object.

    Returns
    -------
    header: OrderedDict
        One entry per field of `GlobalHeader` plus the derived entries
        'rec_datetime' and 'data_start_offset'.
    """
    fid = _as_file(source)
    fid.seek(0)
    header = read_as_dict(fid, GlobalHeader, what="global header")

    if header["MagicNumber"] != PLX_MAGIC_NUMBER:
        logger.warning(f"Unexpected magic number {header['MagicNumber']:#x}, is this a plx file?")

    for _, count_field, _ in channel_tables:
        count = header[count_field]
        if count < 0 or count > MAX_CHANNEL_COUNT:
            raise CorruptHeaderError(f"{count_field}={count} is out of range [0, {MAX_CHANNEL_COUNT}]")

    header["rec_datetime"] = _creation_datetime(header)
    header["data_start_offset"] = data_start_offset(header)
    logger.debug(
        f"plx version {header['Version']}: {header['NumDSPChannels']} dsp, "
        f"{header['NumEventChannels']} event, {header['NumSlowChannels']} slow channels, "
        f"data start at {header['data_start_offset']}"
    )
    return header


def data_start_offset(header):
    offset = GLOBAL_HEADER_SIZE
    for _, count_field, dtype in channel_tables:
        offset += int(header[count_field]) * np.dtype(dtype).itemsize
    return offset


def parse_channel_headers(source, header):
    """
    Read the DSP, event and slow channel header tables that follow the
    global header.

    Returns a tuple (dsp_headers, event_headers, slow_headers) of numpy
    structured arrays, each one exactly as long as declared in `header`.
    """
    fid = _as_file(source)
    fid.seek(GLOBAL_HEADER_SIZE)
    tables = []
    for kind, count_field, dtype in channel_tables:
        count = int(header[count_field])
        dt = np.dtype(dtype)
        if count == 0:
            tables.append(np.zeros(0, dtype=dt))
            continue
        buf = _read_exactly(fid, dt.itemsize * count, f"{kind} channel headers")
        tables.append(np.frombuffer(buf, dtype=dt, count=count))
    return tuple(tables)


def find_channel_header(headers, channel):
    """
    Return, as a dict, the first channel header whose embedded 'Channel'
    field equals `channel`. The position in the table is not used.
    """
    index = np.flatnonzero(headers["Channel"] == channel)
    if index.size == 0:
        raise UnknownChannelError(f"No channel header with Channel={channel}")
    return record_to_dict(headers[index[0]])


def summarize_counts(header):
    """
    Informational per channel counts stored in the global header.
    Only non zero counts are kept. They are not used to parse the data.

    Keys of 'spikes' and 'waveforms' are (channel, unit), keys of 'events'
    are event channel numbers. Keys of 'ad_samples' are the 0-based A/D
    channel numbers (EVCounts index - 300), the same numbering as the
    'Channel' field of the slow channel headers.
    """
    ts_counts = header["TSCounts"]
    wf_counts = header["WFCounts"]
    ev_counts = header["EVCounts"]
    summary = {
        "spikes": {},
        "waveforms": {},
        "events": {},
        "ad_samples": {},
    }
    for chan, unit in zip(*np.nonzero(ts_counts)):
        summary["spikes"][(int(chan), int(unit))] = int(ts_counts[chan, unit])
    for chan, unit in zip(*np.nonzero(wf_counts)):
        summary["waveforms"][(int(chan), int(unit))] = int(wf_counts[chan, unit])
    for i in np.flatnonzero(ev_counts):
        if i < EVENT_COUNTS_AD_START:
            summary["events"][int(i)] = int(ev_counts[i])
        else:
            summary["ad_samples"][int(i) - EVENT_COUNTS_AD_START] = int(ev_counts[i])
    return summary
