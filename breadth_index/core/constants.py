"""Constants and naming conventions for the breadth index system."""

from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = DATA_DIR
LOGS_DIR = DATA_DIR / "logs"

# Upstream service (Binance-compatible REST API, usually a local caching proxy)
DEFAULT_BASE_URL = "http://127.0.0.1:8090"
KLINES_ENDPOINT = "/api/v3/klines"
EXCHANGE_INFO_ENDPOINT = "/api/v3/exchangeInfo"

# Kline array positions
KLINE_OPEN_TIME = 0
KLINE_CLOSE = 4

# Request defaults
DEFAULT_INTERVAL = "1d"
DEFAULT_LIMIT_PER_CALL = 1000  # the proxy cache serves at most 1000 bars
DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_RETRY_DELAY_SECONDS = 1.0

# Universe filter defaults
DEFAULT_QUOTE_ASSET = "USDT"
TRADING_STATUS = "TRADING"

# Run defaults
DEFAULT_CONCURRENCY = 4
DEFAULT_START_DATE = "2023-06-01"

# Output formatting
DATE_FORMAT = "%Y-%m-%d"
PCT_DECIMALS = 2

# Aggregate column names
COL_DATE = "date"
COL_POSITIVE = "positive"
COL_NEGATIVE = "negative"
COL_POSITIVE_PCT = "positive_pct"
COL_NEGATIVE_PCT = "negative_pct"
COL_HH_COUNT = "hh_count"
COL_LL_COUNT = "ll_count"
COL_NET_COUNT = "net_count"

# Signal categories
CATEGORY_SIGNAL = "signal"
