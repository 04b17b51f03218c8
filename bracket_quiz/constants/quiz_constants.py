"""Quiz-related constants shared across the core and API layers."""

import re

MIN_OPTIONS: int = 2
MAX_OPTIONS: int = 6
MIN_QUESTIONS: int = 1
MAX_QUESTIONS: int = 20

MIN_POINTS: int = 1
MAX_POINTS: int = 10
DEFAULT_POINTS: int = 3

MIN_TIME_LIMIT_SECONDS: int = 10
MAX_TIME_LIMIT_SECONDS: int = 300
DEFAULT_TIME_LIMIT_SECONDS: int = 30

MIN_QUESTION_LENGTH: int = 10
MAX_QUESTION_LENGTH: int = 500
MIN_SET_NAME_LENGTH: int = 3
MAX_SET_NAME_LENGTH: int = 100
MAX_SET_DESCRIPTION_LENGTH: int = 500

BATTLE_NUMBER_PATTERN = re.compile(r"^[ESQF]\d+$")

DEFAULT_LEADERBOARD_PAGE_SIZE: int = 20
DEFAULT_LISTING_PAGE_SIZE: int = 20

STORAGE_RETRY_ATTEMPTS: int = 3
STORAGE_RETRY_INITIAL_DELAY_SECONDS: float = 0.05
