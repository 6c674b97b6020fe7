"""
Forward only reading of the plx data blocks.

Each data block is a 16 bytes header, optionally followed by
NumberOfWaveforms * NumberOfWordsInWaveform int16 samples. The only way
to find the next block is to read the current header, so the data
section can only be walked sequentially from a known block offset.

"""

from collections import namedtuple

import numpy as np

from plxio.errors import PlxIOError, TruncatedBlockError


DataBlockHeader = [
    ("Type", "<u2"),
    ("UpperByteOf5ByteTimestamp", "<u2"),
    # unsigned: a signed word wraps after 2**31 ticks (~14.9 hours at 40kHz)
    ("TimeStamp", "<u4"),
    ("Channel", "<u2"),
    ("Unit", "<u2"),
    ("NumberOfWaveforms", "<u2"),
    ("NumberOfWordsInWaveform", "<u2"),
]  # 16 bytes

DATA_BLOCK_HEADER_SIZE = np.dtype(DataBlockHeader).itemsize

SAMPLE_DTYPE = np.dtype("<i2")


class DataBlock(
    namedtuple("DataBlock", ["offset", "type", "timestamp", "channel", "unit", "n_waveforms", "n_words", "samples"])
):
    """
    One raw data block.

    `timestamp` is the full 40 bits tick count, `samples` the flat int16
    payload or None when the block has no waveform.
    """

    __slots__ = ()

    @property
    def sample_count(self):
        return self.n_waveforms * self.n_words

    @property
    def nbytes(self):
        if self.n_waveforms == 0:
            return DATA_BLOCK_HEADER_SIZE
        return DATA_BLOCK_HEADER_SIZE + self.sample_count * SAMPLE_DTYPE.itemsize


def compose_timestamp(upper_byte, low_word):
    return (int(upper_byte) << 32) | int(low_word)


class DataBlockStream:
    """
    Lazy, restartable sequence of :class:`DataBlock` read from a seekable
    binary file.

    Parameters
    ----------
    fid: binary file
        Opened in binary mode, it must support seek/tell/read.
    start_offset: int
        Offset of the first data block, usually the header 'data_start_offset'.

    Iterating reads from the current cursor until the end of the file.
    A block that is cut by the end of file is never yielded: iteration
    stops with :class:`TruncatedBlockError` instead and every block yielded
    before stays valid. :meth:`reset` rewinds to `start_offset` (or to any
    block offset recorded before) for another independent pass.

    Examples
    --------
    >>> stream = DataBlockStream(fid, header["data_start_offset"])
    >>> for block in stream:
    ...     print(block.type, block.timestamp)
    >>> stream.reset()

    """

    def __init__(self, fid, start_offset):
        self.fid = fid
        self.start_offset = int(start_offset)
        self.reset()

    def reset(self, offset=None):
        if offset is None:
            offset = self.start_offset
        self._pos = int(offset)
        self._seek(self._pos)

    def tell(self):
        return self._pos

    def data_size(self):
        """Number of bytes from `start_offset` to the end of the file."""
        try:
            end = self.fid.seek(0, 2)
        except OSError as e:
            raise PlxIOError(self._pos, e) from e
        self._seek(self._pos)
        return max(end - self.start_offset, 0)

    def iter_from(self, offset=None):
        self.reset(offset)
        return iter(self)

    def _seek(self, offset):
        try:
            self.fid.seek(offset)
        except OSError as e:
            raise PlxIOError(offset, e) from e

    def _read(self, nbytes):
        try:
            return self.fid.read(nbytes)
        except OSError as e:
            raise PlxIOError(self._pos, e) from e

    def read_block(self):
        """
        Read the block at the cursor and advance past it.
        Return None at a clean end of data.
        """
        pos = self._pos
        # the cursor is shared, another pass may have moved the file position
        self._seek(pos)
        buf = self._read(DATA_BLOCK_HEADER_SIZE)
        if len(buf) == 0:
            return None
        if len(buf) < DATA_BLOCK_HEADER_SIZE:
            raise TruncatedBlockError(pos, DATA_BLOCK_HEADER_SIZE, len(buf))

        bl_header = np.frombuffer(buf, dtype=DataBlockHeader)[0]
        n_waveforms = int(bl_header["NumberOfWaveforms"])
        n_words = int(bl_header["NumberOfWordsInWaveform"])

        samples = None
        if n_waveforms > 0:
            sample_count = n_waveforms * n_words
            payload_size = sample_count * SAMPLE_DTYPE.itemsize
            payload = self._read(payload_size)
            if len(payload) < payload_size:
                raise TruncatedBlockError(pos, DATA_BLOCK_HEADER_SIZE + payload_size, len(buf) + len(payload))
            samples = np.frombuffer(payload, dtype=SAMPLE_DTYPE, count=sample_count)

        block = DataBlock(
            offset=pos,
            type=int(bl_header["Type"]),
            timestamp=compose_timestamp(bl_header["UpperByteOf5ByteTimestamp"], bl_header["TimeStamp"]),
            channel=int(bl_header["Channel"]),
            unit=int(bl_header["Unit"]),
            n_waveforms=n_waveforms,
            n_words=n_words,
            samples=samples,
        )
        self._pos = pos + block.nbytes
        return block

    def __iter__(self):
        while True:
            block = self.read_block()
            if block is None:
                return
            yield block
