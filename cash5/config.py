"""
Cash 5 configuration constants.

Game geometry, upstream API settings and the archive location. The archive
path can be overridden with CASH5_ARCHIVE (full file path) or CASH5_HOME
(directory holding draws.json).
"""
import os
from math import comb

PROGRAM_NAME = "cash5"
PROGRAM_VERSION = "1.6.2"

# Game geometry
NUMBERS_PER_DRAW = 5
MAX_NUMBER = 45
ALL_NUMBERS = list(range(1, MAX_NUMBER + 1))
TOTAL_COMBINATIONS = comb(MAX_NUMBER, NUMBERS_PER_DRAW)  # 1,221,759
LOW_BOUND = 22  # 1-22 = low, 23-45 = high
TICKET_COST = 2
TIMEZONE = "America/New_York"

# Upstream draw API
API_URL = "https://www.njlottery.com/api/v1/draw-games/draws/page"
GAME_NAME = "Cash 5"
DRAW_STATUS = "CLOSED"
REQUEST_HEADERS = {
    "Accept": "application/json",
    "Referer": "https://www.njlottery.com/en-us/drawgames/jerseycash.html",
    "User-Agent": "Mozilla/5.0",
}
REQUEST_TIMEOUT = 20  # seconds
PAGE_SIZE = 365
MAX_RECORDS = 365
MAX_ATTEMPTS = 5
RETRY_DELAY = 2.0  # seconds
STALE_AFTER_DAYS = 7

# Search parameters
ANNEALING_ITERATIONS = 5000
ANNEALING_INITIAL_TEMP = 100.0
ANNEALING_COOLING_RATE = 0.95
RECOMMENDATION_RUNS = 3
RECOMMENDATION_ITERATIONS = 2000
RANDOM_SEARCH_ITERATIONS = 1000
DISTANCE_SAMPLES = 10_000

LOTTERY_WARNING = "This is basically lighting money on fire! Play for fun, not profit."


def config_dir():
    """Directory holding the archive, honouring CASH5_HOME."""
    override = os.environ.get("CASH5_HOME")
    if override:
        return override
    return os.path.join(os.path.expanduser("~"), ".config", PROGRAM_NAME)


def archive_path():
    """Full path of draws.json, honouring CASH5_ARCHIVE."""
    override = os.environ.get("CASH5_ARCHIVE")
    if override:
        return override
    return os.path.join(config_dir(), "draws.json")
