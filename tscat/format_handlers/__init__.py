#!/usr/bin/env python3
"""
Codecs for persisted translation catalogs.

Supported formats:
- TS: Qt Linguist translation source (the primary catalog format)
- PO: GNU gettext .po/.pot files (interchange)
"""

from .base import FormatHandler, FormatRegistry
from .po import PoHandler
from .ts import TsHandler

# Register handlers (order matters for extension conflicts)
FormatRegistry.register(TsHandler)
FormatRegistry.register(PoHandler)

__all__ = [
    'FormatHandler',
    'FormatRegistry',
    'PoHandler',
    'TsHandler',
]
