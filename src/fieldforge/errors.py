"""Exception definitions for fieldforge"""


class FieldforgeException(Exception):
    """Base exception for all fieldforge errors.

    All custom exceptions in the package inherit from this class. Use this as
    a catch-all for fieldforge-specific errors when you don't need to handle
    specific exception types.
    """

    pass


class ConfigException(FieldforgeException):
    """Raised when configuration validation or loading fails.

    Use this exception when:
    - The configuration file cannot be found
    - The TOML syntax is invalid
    - Configuration validation fails (missing required fields, invalid values)
    """

    pass


class StorageException(FieldforgeException):
    """Raised when the persistence collaborator fails to load or save a schema."""

    pass


class AuthoringValidationError(FieldforgeException):
    """Raised when authored content has structural defects.

    Use this exception when:
    - A rule is missing its message, has a bad pattern or min > max
    - A field key is missing, malformed or duplicated
    - A visibility predicate uses a disallowed construct

    ``errors`` holds every problem found, so all of them can be reported
    together.
    """

    def __init__(self, errors, message: str | None = None):
        if isinstance(errors, str):
            errors = [errors]
        self.errors: list[str] = list(errors)
        super().__init__(message or "; ".join(self.errors) or "Validation failed")


class PredicateSyntaxError(AuthoringValidationError):
    """Raised when a predicate source falls outside the supported grammar."""

    def __init__(self, message: str, position: int | None = None):
        self.position = position
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__([message])


class ImportRejected(AuthoringValidationError):
    """Raised when an imported document fails validation.

    Nothing from the document is applied when this is raised.
    """

    pass


class InterpretationWarning(FieldforgeException):
    """Raised when a predicate or rule list cannot be used at render time.

    The form interpreter catches this per field, logs it and carries on
    (field stays visible, or rule-less). It never escapes ``interpret``.
    """

    def __init__(self, field_key: str, message: str):
        self.field_key = field_key
        super().__init__(f"Field '{field_key}': {message}")


class ConcurrencyViolation(FieldforgeException):
    """Raised when an edit is attempted while another one is open.

    Use this exception when:
    - A second row edit is started while one is in progress
    - A dialog bound to one field is applied to another
    - A structural change is requested while a row is being edited

    The state of the editor is never changed when this is raised.
    """

    NOTICE = "Finish editing the current field first"

    def __init__(self, message: str | None = None, field_id: str | None = None):
        self.field_id = field_id
        super().__init__(message or self.NOTICE)


class PredicateEvaluationError(FieldforgeException):
    """Raised when a compiled predicate fails against concrete form values.

    For example, reading a property of a null or undefined value.
    """

    pass
