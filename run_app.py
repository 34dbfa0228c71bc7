import uvicorn

from ipwatch.config import get_settings
from ipwatch.logger import log_config


def main() -> None:
    """Run the address watcher with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "ipwatch.main:app",
        host=settings.host,
        port=settings.port,
        log_config=log_config,
    )


if __name__ == "__main__":
    main()
