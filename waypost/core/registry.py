"""
Registry of known format codecs.

The registry order is the global default trial order: more specific formats
(strict XML/JSON roots, fixed line layouts) come before lenient ones so a lenient
codec does not claim a file a stricter one would have recognised.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from waypost.core.normalization import normalize_key
from waypost.io.base import FormatCodec

logger = logging.getLogger(__name__)


class FormatRegistry:
    def __init__(
        self,
        formats: Optional[Iterable[FormatCodec]] = None,
        *,
        default_multiple_routes_format: Optional[FormatCodec] = None,
    ):
        self._formats: List[FormatCodec] = list(formats) if formats is not None else default_formats()
        self._default_multiple_routes_format = default_multiple_routes_format

    def formats(self) -> List[FormatCodec]:
        return list(self._formats)

    def read_formats(self) -> List[FormatCodec]:
        return [f for f in self._formats if f.supports_reading]

    def write_formats(self) -> List[FormatCodec]:
        return [f for f in self._formats if f.supports_writing]

    def url_parsing_formats(self) -> List[FormatCodec]:
        return [f for f in self._formats if f.supports_reading and f.parses_urls]

    def read_formats_preferred_by_extension(self, extension: Optional[str]) -> List[FormatCodec]:
        """All read formats, with those claiming `extension` moved to the front (relative order kept)."""
        ext = (extension or "").lower().lstrip(".")
        formats = self.read_formats()
        if not ext:
            return formats
        preferred = [f for f in formats if ext in f.extensions]
        others = [f for f in formats if ext not in f.extensions]
        return preferred + others

    def read_formats_preferred_by_name(
        self, names: Sequence[str], formats: Optional[Sequence[FormatCodec]] = None
    ) -> List[FormatCodec]:
        """`formats` (default: all read formats), with the named ones moved to the front in the given order."""
        formats = list(formats) if formats is not None else self.read_formats()
        preferred: List[FormatCodec] = []
        for name in names:
            codec = self.format_by_name(name)
            if codec is not None and codec in formats and codec not in preferred:
                preferred.append(codec)
        return preferred + [f for f in formats if f not in preferred]

    def format_by_name(self, name: str) -> Optional[FormatCodec]:
        key = normalize_key(name).lstrip(".")
        for codec in self._formats:
            if normalize_key(codec.name) == key or key in codec.extensions:
                return codec
        return None

    def default_multiple_routes_format(self) -> FormatCodec:
        if self._default_multiple_routes_format is not None:
            return self._default_multiple_routes_format
        from waypost.io.gpx import Gpx11Format

        return Gpx11Format()


def default_formats() -> List[FormatCodec]:
    from waypost.io.babel import BabelFormat, default_babel_formats
    from waypost.io.simple_csv import SimpleCsvFormat
    from waypost.io.geojson import GeoJsonFormat
    from waypost.io.google_maps_url import GoogleMapsUrlFormat
    from waypost.io.gpx import Gpx11Format
    from waypost.io.itn import TomTomRouteFormat
    from waypost.io.kml import Kml22Format
    from waypost.io.plt import OziExplorerTrackFormat

    formats: List[FormatCodec] = [
        Gpx11Format(),
        Kml22Format(),
        GeoJsonFormat(),
        OziExplorerTrackFormat(),
        TomTomRouteFormat(),
        SimpleCsvFormat(),
        GoogleMapsUrlFormat(),
    ]
    if BabelFormat.is_available():
        formats.extend(default_babel_formats())
    else:
        logger.debug("gpsbabel not found on PATH, external conversion disabled")
    return formats
