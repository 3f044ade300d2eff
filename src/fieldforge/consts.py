"""Constants for fieldforge"""

# ==================== File Paths ====================
STORAGE_DIR_DEFAULT = "data/schemas"
LOG_FILE_DEFAULT = "data/fieldforge.log"
SCHEMA_FILE_SUFFIX = ".json"

# ==================== Identifiers ====================
IDENTIFIER_PATTERN = r"[a-zA-Z][a-zA-Z0-9_]*"
PROVISIONAL_ID_PREFIX = "temp_"
FIELD_ID_PREFIX = "field_"
SCHEMA_VERSION_DEFAULT = "1.0.0"

# ==================== Predicates ====================
VALUES_VARIABLE = "formValues"
MAX_PREDICATE_LENGTH = 4000
MAX_PREDICATE_DEPTH = 64

# Dynamic code construction and escape hatches, rejected at authoring
FORBIDDEN_PREDICATE_TOKENS = (
    "eval",
    "Function",
    "constructor",
    "__proto__",
    "prototype",
    "import",
    "require",
    "setTimeout",
    "setInterval",
    "globalThis",
    "window",
)

# ==================== Widgets ====================
PROPERTY_DEFAULT_VALUE = "defaultValue"
FULL_WIDTH_WIDGETS = ("TextArea", "JSON")
DATE_FORMATS = (
    "YYYY-MM-DD",
    "YYYY/MM/DD",
    "MM-DD-YYYY",
    "YYYY-MM-DD HH:mm:ss",
    "YYYY/MM/DD HH:mm:ss",
)

# ==================== Retry Policy Section ====================
RETRY_SECTION_ID = "retry"
RETRY_SECTION_TITLE = "Retry Policy"
RETRY_MAX_ATTEMPTS = "maximumRedeliveries"
RETRY_INITIAL_DELAY = "redeliveryDelay"
RETRY_EXPONENTIAL_BACKOFF = "useExponentialBackoff"
RETRY_BACKOFF_MULTIPLIER = "backOffMultiplier"
RETRY_MAX_DELAY = "maximumRedeliveryDelay"

FIELDS_SECTION_ID = "fields"
FIELDS_SECTION_TITLE = "Fields"

# ==================== Template Names ====================
TEMPLATE_PREVIEW = "preview.j2"
