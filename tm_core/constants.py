from __future__ import annotations

CURRENT_SCHEMA_VERSION = 1

DISTANCE_WEIGHT = 0.40
AFFIX_WEIGHT = 0.30
TOKEN_WEIGHT = 0.30

CONTEXT_BOOST = 0.05
CATEGORY_BOOST = 0.03

MIN_SIMILARITY = 0.85
AUTO_ACCEPT_THRESHOLD = 0.85
MAX_FUZZY_RESULTS = 5

MATCH_CACHE_CAPACITY = 10000
NGRAM_SIZE = 2
AFFIX_PREFIX_CAP = 4
AFFIX_SCALING_FACTOR = 0.1

EXACT_MATCH_SIMILARITY = 1.0
