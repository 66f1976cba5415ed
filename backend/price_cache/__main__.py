"""Run the service with uvicorn: ``python -m price_cache``."""

import uvicorn

from .services.config import ConfigService


def main() -> None:
    settings = ConfigService().load_settings()
    uvicorn.run("price_cache.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
