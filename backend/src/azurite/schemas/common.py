import math
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T | None = None
    message: str | None = None
    error: str | None = None


class Page(BaseModel, Generic[T]):
    data: list[T]
    page: int
    per_page: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, items: list[T], page: int, per_page: int, total: int) -> "Page[T]":
        return cls(
            data=items,
            page=page,
            per_page=per_page,
            total=total,
            total_pages=math.ceil(total / per_page) if per_page else 0,
        )


def ok(data=None, message: str | None = None) -> Envelope:
    return Envelope(success=True, data=data, message=message)
