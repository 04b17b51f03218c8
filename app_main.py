"""Application entry point for the bracket prediction quiz service."""

from __future__ import annotations

from bracket_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from bracket_quiz.core.quiz_engine import QuizEngine
from bracket_quiz.server.api_server import run_api_server
from bracket_quiz.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging, build the engine, and serve the API."""
    logger = configure_logging()
    logger.info("Starting bracket quiz service on %s:%d", DEFAULT_HOST, DEFAULT_PORT)

    engine = QuizEngine()
    run_api_server(engine, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
