"""
User document model for the 'User' collection.

Stored elements: Email, Title (omitted when None), FirstName, LastName.
"""

from typing import ClassVar, Optional

from pydantic import Field

from mongosetup.data.entity import BaseEntity


class User(BaseEntity):
    """Application user."""

    omit_if_none: ClassVar[frozenset[str]] = frozenset({"title"})

    email: str = Field(..., alias="Email")
    title: Optional[str] = Field(default=None, alias="Title")
    first_name: Optional[str] = Field(..., alias="FirstName")
    last_name: Optional[str] = Field(..., alias="LastName")

    @property
    def display_name(self) -> str:
        """First and last name separated by a space. Not persisted."""
        first = self.first_name or ""
        last = self.last_name or ""
        return f"{first} {last}"
