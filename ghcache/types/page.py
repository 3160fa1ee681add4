"""Result page of a paginated list query."""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a remote collection.

    ``end_cursor`` is opaque: a GraphQL ``endCursor`` or a REST ``Link`` URL.
    """

    records: list[T] = field(default_factory=list)
    has_next_page: bool = False
    end_cursor: str | None = None
