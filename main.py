"""Launch the shapefile Lambert FastAPI server."""

import uvicorn

from shapefile_lambert.config import configure_logging, get_settings


def main():
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "shapefile_lambert.server:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
