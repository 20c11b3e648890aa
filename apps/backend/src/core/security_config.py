"""What may appear in logs and error bodies.

Identity lives with the external provider; its tokens and the household's
contact details must never be written to a log line.
"""

# Matched as substrings of the lower-cased field name
SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "secret",
        "token",
        "authorization",
        "bearer",
        "api_key",
        "x-api-key",
        "jwt",
        "cookie",
        "session_id",
        "email",
        "phone",
        "address",
    }
)

_BASE_ERROR_FIELDS = frozenset({"correlation_id", "type"})
_DIAGNOSTIC_ERROR_FIELDS = frozenset(
    {"details", "traceback", "exception_type", "validation_errors"}
)

ERROR_FIELDS_BY_ENVIRONMENT: dict[str, frozenset[str]] = {
    "production": _BASE_ERROR_FIELDS,
    "development": _BASE_ERROR_FIELDS | _DIAGNOSTIC_ERROR_FIELDS,
    "test": _BASE_ERROR_FIELDS | _DIAGNOSTIC_ERROR_FIELDS,
}


def get_allowed_error_fields(environment: str) -> frozenset[str]:
    """Unknown environments get the diagnostic set, as development does."""
    return ERROR_FIELDS_BY_ENVIRONMENT.get(
        environment, ERROR_FIELDS_BY_ENVIRONMENT["development"]
    )


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)
