from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "Collaborator",
]


@dataclass(frozen=True)
class Collaborator:
    """One member (owner or collaborator) of the target project."""
    person_id: str
    display_name: str
    email: str

    @classmethod
    def from_mapping(cls, data: dict[str, object]) -> Collaborator:
        return cls(
            person_id=str(data["person_id"]),
            display_name=str(data.get("display_name") or ""),
            email=str(data.get("email") or ""),
        )
