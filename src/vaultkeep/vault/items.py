# Vault - Item Model
#
# A vault item as the storage layer sees it: password and PIN are always
# envelopes (or legacy plaintext), never fresh user input.

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from .exceptions import ItemValidationError


class Category(str, Enum):
    SOCIAL = "social"
    WORK = "work"
    FINANCE = "finance"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class GatedAction(str, Enum):
    """Item actions that require the item's PIN when one is set."""
    VIEW = "view"
    COPY = "copy"
    EDIT = "edit"
    DELETE = "delete"


ENCRYPTION_VERSION = "v1"

MAX_TITLE_LENGTH = 100
MAX_USERNAME_LENGTH = 100
MAX_PASSWORD_LENGTH = 500
MAX_WEBSITE_LENGTH = 200
MAX_NOTES_LENGTH = 1000

PIN_PATTERN = re.compile(r"[0-9]{4}")
# Full URLs or bare domain names
WEBSITE_PATTERN = re.compile(r"^(https?://)?([\da-z.-]+)\.([a-z]{2,6})([/\w .-]*)/?$", re.IGNORECASE)


@dataclass
class VaultItem:
    user_id: str
    title: str
    username: str
    password: str
    website: str
    category: Category = Category.OTHER
    notes: str = ""
    pin: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_active: bool = True
    last_accessed: Optional[datetime] = None
    access_count: int = 0
    encryption_version: str = ENCRYPTION_VERSION
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def has_pin(self) -> bool:
        return bool(self.pin)

    def copy(self, **changes) -> "VaultItem":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form with the password masked, as returned to listings."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "username": self.username,
            "password": "••••••••••••",
            "website": self.website,
            "category": self.category.value,
            "notes": self.notes,
            "has_pin": self.has_pin,
            "is_active": self.is_active,
            "last_accessed": self.last_accessed.isoformat() if self.last_accessed else None,
            "access_count": self.access_count,
            "encryption_version": self.encryption_version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def is_valid_pin(pin: Optional[str]) -> bool:
    """PINs are exactly four ASCII digits."""
    return isinstance(pin, str) and PIN_PATTERN.fullmatch(pin) is not None


def parse_category(value: Optional[str]) -> Category:
    """Map a submitted category to the enum; empty means OTHER."""
    if not value:
        return Category.OTHER
    try:
        return Category(value)
    except ValueError:
        raise ItemValidationError([
            "Invalid category. Must be one of: " + ", ".join(c.value for c in Category)
        ])


def validate_fields(
    fields: Dict[str, Any],
    required: bool = True,
) -> None:
    """
    Validate submitted plaintext item fields.

    Args:
        fields: Submitted values (title, username, password, website, notes, pin)
        required: Creating an item (all required fields must be present).
                  On update only the fields present are checked.

    Raises:
        ItemValidationError: With every problem found
    """
    errors: List[str] = []

    if required:
        missing = [name for name in ("title", "username", "password", "website")
                   if not isinstance(fields.get(name), str) or not fields[name].strip()]
        if missing:
            errors.append("Missing required fields: " + ", ".join(missing))

    limits = (
        ("title", MAX_TITLE_LENGTH),
        ("username", MAX_USERNAME_LENGTH),
        ("password", MAX_PASSWORD_LENGTH),
        ("website", MAX_WEBSITE_LENGTH),
        ("notes", MAX_NOTES_LENGTH),
    )
    for name, limit in limits:
        value = fields.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            errors.append(f"{name} must be a string")
        elif len(value) > limit:
            errors.append(f"{name} must be at most {limit} characters")

    if not required:
        for name in ("title", "username", "password", "website"):
            if name in fields and fields[name] is not None and not str(fields[name]).strip():
                errors.append(f"{name} cannot be empty")

    website = fields.get("website")
    if isinstance(website, str) and website.strip() and not WEBSITE_PATTERN.match(website.strip()):
        errors.append("Please enter a valid website URL or domain")

    pin = fields.get("pin")
    if pin and not is_valid_pin(pin):
        errors.append("PIN must be exactly 4 digits")

    if errors:
        raise ItemValidationError(errors)
