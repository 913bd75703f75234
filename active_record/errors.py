class ORMError(Exception):
    pass


class MissingConnectionError(ORMError):
    def __init__(self, message: str = "Connection object is missing.") -> None:
        super().__init__(message)


class MassAssignmentError(ORMError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Mass assignment error: {key}")
        self.key = key


class ModelNotFoundError(ORMError):
    def __init__(self, model: str) -> None:
        super().__init__(f"No query results for model [{model}].")
        self.model = model


class QueryError(ORMError):
    pass
