"""Internal constants shared across the library."""

BASE_URL = "https://api.geoapify.com/v2"
PLACES_ENDPOINT = "/places"
USER_AGENT = "poisync/1 (+aiohttp)"

EARTH_RADIUS_M = 6_371_000.0

# Upper bound for the per-category ``limit`` query parameter.
MAX_RESULTS_PER_CATEGORY = 20

SUPPORTED_CATEGORIES: tuple[str, ...] = (
    "heritage",
    "natural",
    "tourism.attraction",
    "tourism.attraction.artwork",
    "tourism",
    "building",
    "memorial",
)

REMOTE_ID_PREFIX = "geoapify_"
MANUAL_ID_PREFIX = "poi_"
UNNAMED_PLACE = "Unnamed Place"

# ------------------------------------------------------------------
# Durable store keys
# ------------------------------------------------------------------

STORAGE_KEY_SETTINGS = "settings"
STORAGE_KEY_POIS = "points_of_interest"
STORAGE_KEYS: tuple[str, ...] = (STORAGE_KEY_SETTINGS, STORAGE_KEY_POIS)

# Watch cadence requested from location providers.
WATCH_TIME_INTERVAL_S = 30.0
