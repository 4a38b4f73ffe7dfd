"""Entry point for the standalone API server."""

import uvicorn

from azurite.config import settings


def main() -> None:
    uvicorn.run(
        "azurite.main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
        reload=not settings.is_production,
    )


if __name__ == "__main__":
    main()
