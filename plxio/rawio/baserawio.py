"""
baserawio
======

Classes
-------

BaseRawIO
abstract class which should be overridden to write a RawIO.

A RawIO gives fast access to the raw content of a file:
  * the header is parsed once, with `parse_header()`, and kept in
    the `header` attribute
  * data are then read on demand, never all at once unless asked for

Subclasses implement `_parse_header()` and `_source_name()`.

"""

from __future__ import annotations

import logging

import numpy as np

from plxio import logging_handler


error_header = "Header is not read yet, do parse_header() first"


class BaseRawIO:
    """
    Generic class to handle.

    """

    name = "BaseRawIO"
    description = ""
    extensions = []

    rawmode = None  # only "one-file" for now

    def __init__(self, **kargs):
        """
        init docstring should be filled out at the rawio level so the user knows
        which file to give.

        """
        # create a logger for the IO class
        fullname = self.__class__.__module__ + "." + self.__class__.__name__
        self.logger = logging.getLogger(fullname)
        # Create a logger for 'plxio' and add a handler to it if it doesn't have one already.
        # (it will also not add one if the root logger has a handler)
        corename = self.__class__.__module__.split(".")[0]
        corelogger = logging.getLogger(corename)
        rootlogger = logging.getLogger()
        if not corelogger.handlers and not rootlogger.handlers:
            corelogger.addHandler(logging_handler)

        self.header = None
        self.is_header_parsed = False

    def parse_header(self):
        """
        Parses the header of the file to allow for faster computations
        for all other functions

        """
        self._parse_header()
        self.is_header_parsed = True

    def _check_header_parsed(self):
        if not self.is_header_parsed:
            raise RuntimeError(error_header)

    def source_name(self):
        """Return fancy name of file source"""
        return self._source_name()

    def __repr__(self):
        txt = f"{self.__class__.__name__}: {self.source_name()}\n"
        if self.header is not None:
            for k in ("dsp_channels", "event_channels", "slow_channels"):
                v = pprint_vector(np.char.decode(self.header[k]["Name"], "latin-1"))
                txt += f"{k}: {v}\n"
        return txt

    def _parse_header(self):
        raise NotImplementedError

    def _source_name(self):
        raise NotImplementedError


def pprint_vector(vector, lim: int = 8):
    vector = np.asarray(vector)
    if vector.ndim != 1:
        raise ValueError(f"`vector` must have a dimension of 1 and not {vector.ndim}")
    if len(vector) > lim:
        part1 = ", ".join(e for e in vector[: lim // 2])
        part2 = " , ".join(e for e in vector[-lim // 2 :])
        txt = f"[{part1} ... {part2}]"
    else:
        part1 = ", ".join(e for e in vector)
        txt = f"[{part1}]"
    return txt
