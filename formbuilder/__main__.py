"""Run the service with uvicorn: `python -m formbuilder` or `formbuilder`."""

from __future__ import annotations

import uvicorn

from formbuilder.config import load_config
from formbuilder.logging_setup import configure_logging
from formbuilder.main import create_app


def main() -> None:
    configure_logging()
    cfg = load_config()
    uvicorn.run(create_app(cfg), host=cfg.server.host, port=cfg.server.port, log_config=None)


if __name__ == "__main__":
    main()
