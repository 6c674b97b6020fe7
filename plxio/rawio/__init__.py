"""
:mod:`plxio.rawio` provides classes and functions for reading
Plexon .plx files with a low-level API

Classes:

* :attr:`PlexonRawIO`
* :attr:`DataBlockStream`
* :attr:`BlockIndex`

Functions:

.. autofunction:: plxio.rawio.parse_global_header
.. autofunction:: plxio.rawio.parse_channel_headers
.. autofunction:: plxio.rawio.classify
.. autofunction:: plxio.rawio.select_spikes
.. autofunction:: plxio.rawio.select_events
.. autofunction:: plxio.rawio.select_continuous
.. autofunction:: plxio.rawio.extract_all

"""

from plxio.rawio.plexonheaders import (
    GLOBAL_HEADER_SIZE,
    data_start_offset,
    find_channel_header,
    parse_channel_headers,
    parse_global_header,
    summarize_counts,
)
from plxio.rawio.datablocks import DATA_BLOCK_HEADER_SIZE, DataBlock, DataBlockStream
from plxio.rawio.records import (
    AD_BLOCK_TYPE,
    EVENT_BLOCK_TYPE,
    SPIKE_BLOCK_TYPE,
    STROBED_EVENT_CHANNEL,
    ADSampleBlockRecord,
    EventRecord,
    SpikeRecord,
    UnknownRecord,
    classify,
    decode_blocks,
)
from plxio.rawio.conversion import (
    ad_gain_factor,
    ad_voltage,
    reconstruct_continuous_timestamps,
    spike_gain_factor,
    spike_voltage,
    ticks_to_seconds,
)
from plxio.rawio.query import BlockIndex, extract_all, select_continuous, select_events, select_spikes
from plxio.rawio.plexonrawio import PlexonRawIO

rawiolist = [PlexonRawIO]
