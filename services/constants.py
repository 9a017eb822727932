# ------------------------------
# Module: constants.py
# Description: Constants for the services
# ------------------------------

import os
from pathlib import Path
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent.parent

# Load .env from project root so the overrides below can live there
load_dotenv(PROJECT_ROOT / '.env')

# :::::: Runtime Related :::::: #

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# :::::: FILE PATHS Related :::::: #

# The dataset loaded at startup
DATA_FILE_PATH_STR = os.getenv("ANALYTICS_DATA_FILE", "storage/data/dealer_analytics_sample.csv")
DATA_FILE_PATH = Path(DATA_FILE_PATH_STR) if Path(DATA_FILE_PATH_STR).is_absolute() else PROJECT_ROOT / DATA_FILE_PATH_STR

# :::::: Dataset Related :::::: #

# Header cell that marks the start of the data section in exported CSVs
SUBJECT_HEADER_MARKER = "Dealer Legal Name"

# Name the subject column is given after loading
SUBJECT_COLUMN = "dealer"

# Subject values starting with this are comments in the export
SUBJECT_COMMENT_PREFIX = "#"

# Optional raw header -> canonical metric mappings, for exports using placeholder headers (e.g. "5209")
COLUMN_ALIASES = {}

# :::::: Metric Related :::::: #

METRIC_UNIQUE_VISITORS = "Unique Visitors"
METRIC_VISITS = "Visits"
METRIC_GETTING_STARTED = "cse>mobility_sales>getting_started"
METRIC_PRODUCT_INVENTORY = "cse>mobility_sales>product_inventory"
METRIC_CREDIT_CARD = "pap_added:credit_card"
METRIC_ORDER_CONFIRMATION = "cse>mobility_sales>order_confirmation"

KNOWN_METRICS = [
    METRIC_UNIQUE_VISITORS,
    METRIC_VISITS,
    METRIC_GETTING_STARTED,
    METRIC_PRODUCT_INVENTORY,
    METRIC_CREDIT_CARD,
    METRIC_ORDER_CONFIRMATION,
]

# Fallbacks used when a query names no usable metric
DEFAULT_METRIC = METRIC_CREDIT_CARD
DEFAULT_SECOND_METRIC = METRIC_VISITS
DEFAULT_SORT_METRIC = METRIC_VISITS
DEFAULT_RATIO_NUMERATOR = METRIC_CREDIT_CARD
DEFAULT_RATIO_DENOMINATOR = METRIC_VISITS

# Human friendly names used in labels and descriptions
METRIC_DISPLAY_NAMES = {
    METRIC_UNIQUE_VISITORS: "Unique Visitors",
    METRIC_VISITS: "Visits",
    METRIC_GETTING_STARTED: "Getting Started Page Views",
    METRIC_PRODUCT_INVENTORY: "Product Inventory Page Views",
    METRIC_CREDIT_CARD: "Credit Card Additions",
    METRIC_ORDER_CONFIRMATION: "Order Confirmations",
}

# Phrases that imply a "total sales" style question
SALES_TOTAL_PHRASES = ["total sales", "sales total", "sales figures", "sales numbers"]

# Trigger phrases used to detect which metrics a query talks about. Order matters.
METRIC_TRIGGERS = [
    (METRIC_UNIQUE_VISITORS, ["unique visitor"]),
    (METRIC_VISITS, ["visit", "traffic"]),
    (METRIC_GETTING_STARTED, ["getting started", "start page"]),
    (METRIC_PRODUCT_INVENTORY, ["product inventory", "inventory page"]),
    (METRIC_CREDIT_CARD, ["credit card", "pap", "addition"]),
    (METRIC_ORDER_CONFIRMATION, ["order", "confirmation", "mobility"] + SALES_TOTAL_PHRASES),
]

# Trigger phrases used to pick the sort metric of a top/bottom query. First hit wins, else DEFAULT_SORT_METRIC.
SORT_METRIC_TRIGGERS = [
    (METRIC_UNIQUE_VISITORS, ["unique visitor"]),
    (METRIC_GETTING_STARTED, ["getting started", "start page"]),
    (METRIC_PRODUCT_INVENTORY, ["product inventory", "inventory page"]),
    (METRIC_CREDIT_CARD, ["credit card", "pap", "addition"]),
    (METRIC_ORDER_CONFIRMATION, ["order", "confirmation"] + SALES_TOTAL_PHRASES),
]

# Loose phrase -> canonical metric dictionary
METRIC_PHRASES = {
    "unique visitors": METRIC_UNIQUE_VISITORS,
    "unique": METRIC_UNIQUE_VISITORS,
    "visitors": METRIC_UNIQUE_VISITORS,
    "visits": METRIC_VISITS,
    "total visits": METRIC_VISITS,
    "traffic": METRIC_VISITS,
    "getting started": METRIC_GETTING_STARTED,
    "getting started page": METRIC_GETTING_STARTED,
    "product inventory": METRIC_PRODUCT_INVENTORY,
    "inventory page": METRIC_PRODUCT_INVENTORY,
    "credit card": METRIC_CREDIT_CARD,
    "credit card additions": METRIC_CREDIT_CARD,
    "additions": METRIC_CREDIT_CARD,
    "pap": METRIC_CREDIT_CARD,
    "order confirmation": METRIC_ORDER_CONFIRMATION,
    "orders": METRIC_ORDER_CONFIRMATION,
    "confirmation": METRIC_ORDER_CONFIRMATION,
    "sales": METRIC_ORDER_CONFIRMATION,
    "total sales": METRIC_ORDER_CONFIRMATION,
}

# Pairs where the wording of a ratio is easy to flip. Mention order decides numerator.
AMBIGUOUS_RATIO_PAIRS = [
    frozenset({METRIC_ORDER_CONFIRMATION, METRIC_UNIQUE_VISITORS}),
    frozenset({METRIC_ORDER_CONFIRMATION, METRIC_VISITS}),
]

# :::::: Query Parsing Related :::::: #

TOP_WORDS = ["top", "highest", "most"]
BOTTOM_WORDS = ["bottom", "lowest", "least"]

# Narrower sets used to detect a combined top-and-bottom question
COMBINED_TOP_WORDS = ["top", "highest"]
COMBINED_BOTTOM_WORDS = ["bottom", "lowest"]

COMPARE_WORD = "compare"

# Words in a "for X" capture that mean "all subjects" rather than a named subject
SUBJECT_FILTER_EXCLUDES = ["each", "every", "all", "these"]

# Nouns naming the subject itself. "reps by visits" ranks reps, it isn't a ratio.
SUBJECT_WORDS = ["rep", "reps", "dealer", "dealers", "store", "stores", "location", "locations"]

INCLUDE_ALL_PHRASES = [
    "all reps", "every rep", "each rep",
    "all sales", "every sales",
    "all dealers", "every dealer", "each dealer",
]

DEFAULT_TOP_BOTTOM_LIMIT = 5
DEFAULT_COMPARE_LIMIT = 10
DEFAULT_COMBINED_LIMIT = 3
INCLUDE_ALL_LIMIT = 100

# :::::: Query Execution Related :::::: #

CALCULATED_RATIO_KEY = "calculated_ratio"
RATIO_LABEL_KEY = "ratio_label"

RATIO_DECIMALS = 4
STATISTIC_DECIMALS = 4

# Max rows returned alongside a statistical answer
STATISTICS_SAMPLE_SIZE = 10

# Correlation strength buckets, checked in order against |r|
CORRELATION_STRENGTHS = [
    (0.7, "strong"),
    (0.3, "moderate"),
    (0.1, "weak"),
]

# :::::: Memory Related :::::: #

MEMORY_CAPACITY = int(os.getenv("MEMORY_CAPACITY", "100"))
DEFAULT_USER_ID = "anonymous"
DEFAULT_RECENT_LIMIT = 10
DEFAULT_RELATED_LIMIT = 5

# Words this short or shorter are ignored when looking for related queries
RELATED_KEYWORD_MIN_LENGTH = 4

# :::::: Chat Related :::::: #

# Longer questions are rejected before parsing
MAX_QUERY_LENGTH = 500

NO_DATA_MESSAGE = "I couldn't find any data matching your query."
GENERIC_ERROR_MESSAGE = "Failed to process query"
EMPTY_QUERY_MESSAGE = "Query is required"
QUERY_TOO_LONG_MESSAGE = "Query is too long, please shorten your question"
