MODEL_VERSION = "status-heuristic-v1"

STATUSES = ("sam", "mam", "normal")

# Tier cascade thresholds (first match wins)
SAM_BMI_MAX = 16.0
MAM_BMI_MAX = 18.5
SAM_INDEX_MIN = 7  # poverty/sanitation strictly above -> sam tier
MAM_INDEX_MIN = 5  # poverty/sanitation strictly above -> mam tier
SAM_MEALS_MIN = 2  # meals strictly below -> sam tier
MAM_MEALS_MIN = 3  # meals strictly below -> mam tier

# Per-tier draw ranges (low, high) for the (sam, mam, normal) probabilities
TIER_RANGES = {
    "sam": ((0.70, 0.95), (0.20, 0.35), (0.10, 0.20)),
    "mam": ((0.10, 0.25), (0.60, 0.85), (0.30, 0.50)),
    "normal": ((0.05, 0.15), (0.15, 0.30), (0.80, 0.95)),
}

# Accepted input ranges
INDEX_RANGE = (0, 10)
MIN_MEALS = 1

PROBABILITY_DECIMALS = 4
