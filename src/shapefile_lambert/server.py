"""FastAPI server exposing record parsing and Lambert reprojection."""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import Settings, get_settings
from .crs import detect_profile
from .exceptions import ConversionError, ShapefileFormatError, UnknownProfileError
from .models import ShapefileHeader, ShapeRecord
from .projection import LambertConverter
from .stream import FeatureStream

logger = logging.getLogger(__name__)

app = FastAPI(title="Shapefile Lambert", version="0.1.0")

COMPANION_EXTS = {".shp", ".prj"}


class ConvertRequest(BaseModel):
    """A planar coordinate to reproject."""

    profile: str | None = None
    x: float
    y: float


class ConvertResponse(BaseModel):
    profile: str
    longitude: float
    latitude: float


class RecordsResponse(BaseModel):
    """Parsed content of an uploaded .shp file."""

    header: ShapefileHeader
    profile: str | None
    records: list[ShapeRecord]


@app.exception_handler(ConversionError)
async def conversion_error_handler(request: Request, exc: ConversionError) -> JSONResponse:
    logger.error("Conversion failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def _converter(profile: str | None, settings: Settings) -> LambertConverter:
    try:
        return LambertConverter.from_settings(profile, settings)
    except UnknownProfileError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/convert", response_model=ConvertResponse)
def convert_point(request: ConvertRequest, settings: Settings = Depends(get_settings)):
    """Reproject one Lambert coordinate to WGS84 degrees."""
    converter = _converter(request.profile, settings)
    longitude, latitude = converter(request.x, request.y)
    return ConvertResponse(profile=converter.profile.name, longitude=longitude, latitude=latitude)


@app.post("/records", response_model=RecordsResponse)
def read_records(
    files: list[UploadFile],
    profile: str | None = Query(None),
    reproject: bool = Query(True),
    settings: Settings = Depends(get_settings),
):
    """Parse an uploaded shapefile and return its records.

    Declared synchronous so FastAPI runs it in its threadpool.

    Accepts:
    - A single .zip containing the shapefile components
    - A .shp file, optionally with its .prj

    Without an explicit ``profile`` the .prj decides; if neither names a
    known preset, coordinates are returned as stored.
    """
    filename = (files[0].filename or "").lower() if len(files) == 1 else ""
    if filename.endswith(".zip"):
        file_map = _extract_zip(files[0].file.read())
    else:
        file_map = _collect_files(files)

    if ".shp" not in file_map:
        raise HTTPException(status_code=400, detail="Missing required .shp file")

    if profile is None and ".prj" in file_map:
        profile = detect_profile(file_map[".prj"].decode("utf-8", errors="replace"))

    converter = _converter(profile, settings) if reproject and profile is not None else None

    try:
        with FeatureStream(io.BytesIO(file_map[".shp"]), point_converter=converter) as stream:
            header = stream.header
            records = [feature.shape for feature in stream]
    except ShapefileFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return RecordsResponse(
        header=header,
        profile=converter.profile.name if converter else None,
        records=records,
    )


def _extract_zip(content: bytes) -> dict[str, bytes]:
    """Read the first .shp and .prj members of a zip archive."""
    file_map: dict[str, bytes] = {}
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as zf:
            for name in zf.namelist():
                ext = Path(name).suffix.lower()
                if ext in COMPANION_EXTS and ext not in file_map:
                    file_map[ext] = zf.read(name)
    except zipfile.BadZipFile as exc:
        raise HTTPException(status_code=400, detail=f"Invalid zip archive: {exc}") from exc
    return file_map


def _collect_files(files: list[UploadFile]) -> dict[str, bytes]:
    file_map: dict[str, bytes] = {}
    for f in files:
        ext = Path(f.filename or "").suffix.lower()
        if ext in COMPANION_EXTS:
            file_map[ext] = f.file.read()
    return file_map
