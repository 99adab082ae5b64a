"""Pick a projection profile from a shapefile's .prj companion."""

from __future__ import annotations

import logging
from pathlib import Path

from pyproj import CRS
from pyproj.exceptions import CRSError

logger = logging.getLogger(__name__)

PROFILE_BY_EPSG = {
    2154: "L93",  # RGF93 / Lambert-93
    27562: "LII",  # NTF (Paris) / Lambert Centre France
}


def load_crs(prj_source: str | Path | None) -> CRS | None:
    """Parse .prj WKT given as text or as a path; None when absent or unreadable."""
    if isinstance(prj_source, Path):
        if not prj_source.is_file():
            logger.debug("No .prj at %s", prj_source)
            return None
        prj_source = prj_source.read_text(errors="replace")
    if not prj_source or not prj_source.strip():
        return None
    try:
        return CRS.from_wkt(prj_source)
    except CRSError as exc:
        logger.warning("Could not parse .prj WKT: %s", exc)
        return None


def detect_profile(prj_source: str | Path | None) -> str | None:
    """Return the profile key matching the .prj CRS, or None when no preset applies."""
    crs = load_crs(prj_source)
    if crs is None:
        return None
    epsg = crs.to_epsg()
    profile = PROFILE_BY_EPSG.get(epsg)
    if profile is None:
        logger.info("No projection profile for %s (EPSG:%s)", crs.name, epsg)
    return profile
