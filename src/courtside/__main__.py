"""Run the Courtside API with uvicorn."""

import uvicorn

from .core.config import get_settings


def main() -> None:
    """Serve the app on the configured host and port with a single worker."""
    settings = get_settings()
    uvicorn.run(
        "courtside.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
