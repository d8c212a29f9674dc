"""Run the chat relay under uvicorn.

    python entrypoint.py

HOST, PORT, RELOAD, LOG_LEVEL and LOG_FILE come from the environment.
"""

import uvicorn

from constants import HOST, LOG_FILE, LOG_LEVEL, PORT, RELOAD
from logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def run(host: str = HOST, port: int = PORT, reload: bool = RELOAD) -> None:
    setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
    logger.info(f"Starting chat relay server on {host}:{port} (reload={reload})")
    # Rooms and presence live in this process, so never more than one worker
    uvicorn.run("app:app", host=host, port=port, reload=reload, workers=1)


if __name__ == "__main__":
    run()
