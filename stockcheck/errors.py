"""Exception types raised at the import, mapping and storage seams."""

from __future__ import annotations


class ImportRejected(ValueError):
    """Raised when raw CSV text cannot become a dataset.

    Nothing is stored when this is raised.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class IncompleteMappingError(ValueError):
    """Raised when a mapping without every required field is used."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        fields = ", ".join(self.missing)
        super().__init__(f"Mapping is incomplete; missing required fields: {fields}")


class StorageError(RuntimeError):
    """Raised when the key/value store cannot be read or written."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key
