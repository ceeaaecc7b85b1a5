"""Cache constants shared by the cache, its consumers and the settings."""

# Bumping the version makes every entry written under the previous tag
# unreadable on the next lookup.
CACHE_VERSION = "3.0.2"

# Durations in seconds
CACHE_DURATIONS = {
    "STATIC": 365 * 24 * 60 * 60,
    "DYNAMIC": 24 * 60 * 60,
    "API": 5 * 60,
    "IMAGES": 7 * 24 * 60 * 60,
    "USER_DATA": 30 * 60,
    "PROPERTIES": 10 * 60,
}

CACHE_KEYS = {
    "PROPERTIES": "properties",
    "PROPERTIES_FILTERED": "properties-filtered",
    "USER_PROFILE": "user-profile",
    "AUTH_STATE": "auth-state",
}

# Key namespaces used for bulk invalidation
PROPERTY_PREFIXES = ("properties-", "property-")
USER_PREFIXES = ("user-", "auth-", "profile-")

# Listing query with no filters applied
DEFAULT_PROPERTIES_KEY = "properties-{}"
