"""
Configuration for Pastry Sales Insights.
Values can be overridden through environment variables (or a .env file at project root).
"""
import os

# Project root (directory containing src/, config/, tests/, etc.)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Remote order/branch API (the document store backend)
ORDERS_API_BASE = os.environ.get("ORDERS_API_BASE", "http://127.0.0.1:8080/api")
ORDERS_API_TIMEOUT = int(os.environ.get("ORDERS_API_TIMEOUT", 30))

# Generative-text model (OpenAI-compatible endpoint)
CHAT_API_KEY = os.environ.get("CHAT_API_KEY", "")
CHAT_API_BASE = os.environ.get("CHAT_API_BASE", "https://api.groq.com/openai/v1")
CHAT_MODEL = os.environ.get("CHAT_MODEL", "llama-3.3-70b-versatile")
CHAT_TEMPERATURE = float(os.environ.get("CHAT_TEMPERATURE", 0.7))
CHAT_MAX_TOKENS = int(os.environ.get("CHAT_MAX_TOKENS", 2048))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Every analysis is grounded on at least this many days of history
MIN_ANALYSIS_DAYS = 30

# Tier buckets by total sold: (tier, lower bound inclusive), checked in order
TIER_THRESHOLDS = [
    ("A", 500),
    ("B", 200),
    ("C", 100),
    ("D", 50),
    ("E", float("-inf")),
]

# Response validation
NUMBER_TOLERANCE = 0.1
PERCENTAGE_BOUNDS = (-100.0, 1000.0)
NOT_SOLD_PHRASES = ("not sold", "satılmır")

# Branch listing "type" tags for the two branch groups
BRANCH_TYPE_NEXT = "next"
BRANCH_TYPE_COFFEMANIA = "coffemania"

# Roster used when the branch listing cannot be fetched at startup
DEFAULT_BRANCHES = [
    {"id": "1", "name": "Next Ağşəhər", "type": BRANCH_TYPE_NEXT},
    {"id": "2", "name": "Next Xətai", "type": BRANCH_TYPE_NEXT},
    {"id": "3", "name": "Next Mərkəz", "type": BRANCH_TYPE_NEXT},
    {"id": "4", "name": "Next City Mall", "type": BRANCH_TYPE_NEXT},
    {"id": "5", "name": "Next Crescent", "type": BRANCH_TYPE_NEXT},
    {"id": "6", "name": "Coffemania Gəncə", "type": BRANCH_TYPE_COFFEMANIA},
    {"id": "7", "name": "Coffemania Dəniz Mall", "type": BRANCH_TYPE_COFFEMANIA},
    {"id": "8", "name": "Coffemania Nərimanov", "type": BRANCH_TYPE_COFFEMANIA},
    {"id": "9", "name": "Coffemania Azadlıq", "type": BRANCH_TYPE_COFFEMANIA},
    {"id": "10", "name": "Coffemania Əhmədli", "type": BRANCH_TYPE_COFFEMANIA},
]

# Category by substring of the normalized product name, first match wins
CATEGORY_RULES = [
    ("şokolad", "Chocolate"),
    ("chocolate", "Chocolate"),
    ("tort", "Cake"),
    ("cake", "Cake"),
]
DEFAULT_CATEGORY = "Other"

# Products pinned to one branch group.
# match: "exact" compares the whole normalized name, "contains" a substring.
# tag: "only_next" | "only_coffemania"
RESTRICTION_RULES = [
    {"match": "contains", "pattern": "şokolad lokumlu", "tag": "only_next"},
    {"match": "exact", "pattern": "şokolad", "tag": "only_coffemania"},
]

# Assistant
RESPONSE_LANGUAGE = os.environ.get("RESPONSE_LANGUAGE", "Azerbaijani")
FALLBACK_MESSAGE = "Bağışlayın, bir xəta baş verdi. Zəhmət olmasa yenidən cəhd edin."
