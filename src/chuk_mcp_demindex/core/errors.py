"""Error kinds raised by the tile index engine."""


class TileIndexError(Exception):
    """Base class for tile index errors."""


class FormatMismatchError(TileIndexError):
    """A file's header did not describe a recognizable elevation tile."""


class LoadFailureError(TileIndexError):
    """A tile payload could not be read (missing, locked, corrupt, or mis-sized)."""


class OutOfBoundsError(TileIndexError, IndexError):
    """A grid address fell outside a raster's allocated bounds."""


class RasterStateError(TileIndexError, ValueError):
    """A raster was used before its size or data was set."""
