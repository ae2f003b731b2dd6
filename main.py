"""
Equation Quest — Entry point.

Serve the game API with uvicorn.
"""

import logging

import uvicorn

from game import config


def main() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("backend.app.main:app", host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
