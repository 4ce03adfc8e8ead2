"""Storage-layer errors."""


class DuplicateRecordError(Exception):
    """A unique column (username, email, role name, token) already holds the value."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Duplicate value for {field}")
        self.field = field
