"""
Application-wide constants.

Collection names, HTTP headers, scheduling intervals and other magic numbers live here.
"""

# MongoDB Collection Names
COLLECTION_OFFICIALS = "officials"
COLLECTION_BILLS = "bills"
COLLECTION_VOTES = "votes"
COLLECTION_STATEMENTS = "statements"
COLLECTION_COMMITTEES = "committees"
COLLECTION_ELECTIONS = "elections"
COLLECTION_ARTICLES = "articles"
COLLECTION_TOPIC_COMPARISONS = "topic_comparisons"
COLLECTION_ANALYTICS_SNAPSHOTS = "analytics_snapshots"
COLLECTION_HEALTH_SNAPSHOTS = "health_snapshots"

# HTTP
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "CivicWatchdog-DataCollector/1.0 (Government Transparency Platform)"
DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-CA,en;q=0.5",
    "Cache-Control": "no-cache",
}
FEED_ACCEPT = "application/rss+xml,application/atom+xml,application/xml;q=0.9,*/*;q=0.5"

# Retry / backoff
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_MS = 2000
DEFAULT_MAX_DELAY_MS = 60000
# Client errors that are still worth retrying
RETRYABLE_STATUS_CODES = {408, 425, 429}

# Rate Limiting
DEFAULT_RATE_LIMIT_PER_MINUTE = 30  # requests per minute per source
NEWS_SOURCE_DELAY = 2.0  # seconds between news feeds
ENRICHMENT_CALL_DELAY = 1.0  # seconds between classifier calls

# Data Sync Schedule
STARTUP_DELAY_SECONDS = 120
SYNC_GOVERNMENT_EVERY_MINUTES = 120
SYNC_NEWS_EVERY_MINUTES = 30
RECOMPUTE_ANALYTICS_EVERY_MINUTES = 60
COLLECT_HEALTH_EVERY_MINUTES = 5

# Crawl tiers (by crawl frequency in hours)
TIER_FREQUENT = "frequent"    # <= 6 hours
TIER_DAILY = "daily"          # <= 24 hours
TIER_WEEKLY = "weekly"        # everything slower

# News ingestion
ARTICLES_PER_FEED = 5
MIN_ARTICLE_TEXT_LENGTH = 40
MIN_SOURCES_FOR_COMPARISON = 2

# Text enrichment
ENRICHMENT_TEXT_LIMIT = 2000  # characters sent to the classifier

# Trust score (initial value for newly discovered officials)
TRUST_SCORE_BASE = 75
TRUST_SCORE_MIN = 50
TRUST_SCORE_MAX = 95

# Sentinel values
UNKNOWN_JURISDICTION = "Unknown"
DEFAULT_BILL_CATEGORY = "General Legislation"
DEFAULT_TOPIC = "General"
