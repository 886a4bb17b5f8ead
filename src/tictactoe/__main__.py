"""Entry point for running the game via ``python -m tictactoe``."""

from __future__ import annotations

import uvicorn

from . import config
from .logging_setup import setup_logging


def main() -> None:
    """Start the FastAPI-powered Tic-Tac-Toe web server."""

    setup_logging()
    uvicorn.run(
        "tictactoe.ui:app",
        host=config.HOST,
        port=config.PORT,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
