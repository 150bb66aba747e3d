from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .errors import DeserializationError, NetworkError, ServerError

# wire name -> Repository field
WIRE_FIELDS = {
    "id": "id",
    "name": "name",
    "full_name": "full_name",
    "description": "description",
    "html_url": "html_url",
    "language": "language",
    "fork": "fork",
    "stargazers_count": "stars",
}


@dataclass(frozen=True)
class Repository:
    name: str
    id: int | None = None
    full_name: str | None = None
    description: str | None = None
    html_url: str | None = None
    language: str | None = None
    fork: bool = False
    stars: int = 0

    @classmethod
    def from_wire(cls, item: Any, *, index: int = 0) -> "Repository":
        if not isinstance(item, dict):
            raise DeserializationError(f"element {index} is not an object")
        name = item.get("name")
        if not isinstance(name, str):
            raise DeserializationError(f"element {index} has no string 'name'")
        values: dict[str, Any] = {}
        for wire_name, attr in WIRE_FIELDS.items():
            if wire_name in item and item[wire_name] is not None:
                values[attr] = item[wire_name]
        try:
            return cls(**values)
        except TypeError as e:
            raise DeserializationError(f"element {index}: {e}") from e


def parse_repositories(payload: Any) -> tuple[Repository, ...]:
    if not isinstance(payload, list):
        raise DeserializationError(f"expected a JSON array, got {type(payload).__name__}")
    return tuple(Repository.from_wire(item, index=i) for i, item in enumerate(payload))


@dataclass(frozen=True)
class Success:
    repositories: tuple[Repository, ...] = field(default_factory=tuple)
    ok: bool = field(default=True, init=False)

    @property
    def names(self) -> list[str]:
        return [r.name for r in self.repositories]


FailureReason = Union[NetworkError, ServerError, DeserializationError]


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    ok: bool = field(default=False, init=False)

    @property
    def status_code(self) -> int | None:
        if isinstance(self.reason, ServerError):
            return self.reason.status_code
        return None


RepositoryListResult = Union[Success, Failure]
