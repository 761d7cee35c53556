"""Field-level validation records shared by the Book, Member and Borrowing entities."""

from pydantic import BaseModel, ConfigDict


class FieldViolation(BaseModel):
    """A single broken field rule: which field and why."""

    field: str
    reason: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.field}: {self.reason}"


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()
