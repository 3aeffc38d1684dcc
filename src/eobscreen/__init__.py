"""
eobscreen package initialization.

Exports the subpackages used to normalize cell-death measurements, build
excess-over-Bliss combination records and estimate per-cell eob.
"""

from .__version__ import __version__

from . import errors
from . import util
from . import process_raw
from . import normalize
from . import combination
from . import analysis
