"""Run the API server: ``python -m echo_api``."""

import uvicorn

from echo_api.config import settings


def main() -> None:
    uvicorn.run(
        "echo_api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.env == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
