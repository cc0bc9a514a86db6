POLARS_SIZE_THRESHOLD_MB = 100

MISSING_TOKENS = frozenset({
    "", "null", "undefined", "na", "n/a", "nan", "none", "nil",
    "-", "--", "?", "missing", "empty",
})
ERROR_SUBSTRINGS = (
    "#error", "#div/0!", "#value!", "#ref!", "#name?", "#num!", "#n/a", "#null!", "error",
)
ERROR_EXACT_TOKENS = frozenset({"inf", "-inf", "infinity"})

DATE_MIN_YEAR = 1900
DATE_MAX_YEAR = 2100

OUTLIER_MIN_VALUES = 5
OUTLIER_IQR_MULTIPLIER = 1.5

LOW_DUPLICATES_RATIO = 0.001
MEDIUM_DUPLICATES_RATIO = 0.01

MISSING_PENALTY_WEIGHT = 0.8
MISSING_PENALTY_CAP = 40
DUPLICATE_PENALTY_WEIGHT = 2
DUPLICATE_PENALTY_CAP = 20
ERROR_PENALTY_WEIGHT = 5
ERROR_PENALTY_CAP = 15

RECONCILE_LOWER_TOLERANCE = 15
RECONCILE_UPPER_TOLERANCE = 10

CRITICAL_MISSING_PERCENTAGE = 20
CRITICAL_DUPLICATE_PERCENTAGE = 5
CRITICAL_COLUMN_MISSING_RATIO = 0.2

MARKETPLACE_MIN_SCORE = 75
MARKETPLACE_MIN_BASE_PRICE = 10
MARKETPLACE_PRICE_PER_BAND = 5
MARKETPLACE_ROWS_PER_BAND = 1000
MARKETPLACE_MAX_QUALITY_BONUS = 20

NARRATIVE_SAMPLE_ROWS = 3

DEFAULT_LLM_PROVIDER = "gemini"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_LLM_MODEL = "microsoft/Phi-3-mini-4k-instruct"
DEFAULT_LLM_MAX_TOKENS = 800
DEFAULT_LLM_TEMPERATURE = 0.2
DEFAULT_LLM_TIMEOUT = 15
