class MongoSetupError(Exception):
    """Base exception for mongosetup errors."""

    pass


class ConfigurationError(MongoSetupError):
    """A required configuration entry is missing."""

    def __init__(self, message: str, connection_string_name: str | None = None):
        super().__init__(message)
        self.connection_string_name = connection_string_name


class OperationCanceledError(MongoSetupError):
    """A pre-action event handler vetoed a save or delete."""

    def __init__(self, entity: object, operation: str):
        super().__init__(
            f"{operation.capitalize()} of {type(entity).__name__} was canceled"
        )
        self.entity = entity
        self.operation = operation
