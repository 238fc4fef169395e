from typing import Any, List, NamedTuple, Optional


class ConfigurationError(RuntimeError):
    """Required environment configuration is missing."""


class DatabaseConnectionError(ConnectionError):
    """The underlying MongoDB connect call failed. Safe to retry."""


class Violation(NamedTuple):
    field: str
    message: str


class ValidationError(ValueError):
    """A record broke one or more field or cross-entity rules."""

    def __init__(self, violations: List[Violation]):
        self.violations = list(violations)
        super().__init__(
            "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        )

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([Violation(field, message)])

    @property
    def field(self) -> Optional[str]:
        return self.violations[0].field if self.violations else None

    def to_list(self) -> List[dict]:
        return [v._asdict() for v in self.violations]


class ConstraintViolationError(Exception):
    """A write was rejected by a unique index."""

    def __init__(self, index: str, key: Optional[dict] = None):
        self.index = index
        self.key = key or {}
        super().__init__(f"Duplicate key for index {index}: {self.key}")

    @classmethod
    def from_duplicate_key(cls, exc: Any) -> "ConstraintViolationError":
        details = getattr(exc, "details", None) or {}
        key = details.get("keyValue") or {}
        index = "unknown"
        errmsg = details.get("errmsg") or str(exc)
        if " index: " in errmsg:
            index = errmsg.split(" index: ", 1)[1].split(" ", 1)[0]
        elif key:
            index = "_".join(key)
        return cls(index, key)
