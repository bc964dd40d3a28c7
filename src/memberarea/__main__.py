"""memberarea entrypoint.

Run with:
  python -m memberarea
"""

import uvicorn

from memberarea.config import Settings
from memberarea.log import configure_logging


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(
        "memberarea.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
