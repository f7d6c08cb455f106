"""Configuration and settings for the arbitrage scanner."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Bookmaker endpoints (domains move around, so they can be overridden)
MOSTBET_BASE_URL = os.getenv("MOSTBET_BASE_URL", "https://mostbet-in62.com")
MELBET_BASE_URL = os.getenv("MELBET_BASE_URL", "https://melbet-india.net")
ONEXBET_BASE_URL = os.getenv("ONEXBET_BASE_URL", "https://ind.1x-bet.mobi")

# Rate limiting
REQUESTS_PER_MINUTE = int(os.getenv("REQUESTS_PER_MINUTE", "60"))
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "20"))

# Mostbet line list is paginated
MOSTBET_PAGE_SIZE = 20

# Fixture matching
SIMILARITY_THRESHOLD = 0.6
MAX_TIME_DIFFERENCE_MINUTES = 5

# Arbitrage
DEFAULT_TOTAL_STAKE = 1000
HANDICAP_TOLERANCE = 0.01

# Fixture lists older than this are refetched
DATA_REFRESH_MINUTES = 15

# Headers that make the feeds answer like they would to a browser
DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
}

# Query parameters shared by the 1xBet line feed (MelBet runs on it)
ONEXBET_FEED_PARAMS = {
    "lng": "en",
    "partner": 71,
    "country": 71,
    "gr": 35,
}

ONEXBET_GAME_PARAMS = {
    **ONEXBET_FEED_PARAMS,
    "isSubGames": "true",
    "GroupEvents": "true",
    "allEventsGroupSubGames": "true",
    "countevents": 250,
    "fcountry": 71,
    "marketType": 1,
    "isNewBuilder": "true",
}

# Bookmaker keys and display names
BOOKMAKERS = {
    "mostbet": "Mostbet",
    "melbet": "MelBet",
    "1xbet": "1xBet",
}
