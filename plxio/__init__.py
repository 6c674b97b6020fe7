'''
plxio is a package for decoding the legacy Plexon .plx
electrophysiology file format: spikes, events and continuous signals.
'''
import importlib.metadata
# this need to be at the begining because some sub module will need the version
__version__ = importlib.metadata.version("plxio")

import logging

logging_handler = logging.StreamHandler()

from plxio.errors import *
from plxio.rawio import *
