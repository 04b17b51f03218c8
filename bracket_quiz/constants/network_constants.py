"""Network configuration constants for the quiz engine."""

import os

DEFAULT_HOST: str = os.getenv("BRACKET_QUIZ_HOST", "0.0.0.0")
DEFAULT_PORT: int = int(os.getenv("BRACKET_QUIZ_PORT", "8000"))
API_WORKER_COUNT: int = 1
