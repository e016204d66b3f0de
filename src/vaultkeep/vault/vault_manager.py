# Vault - Item Service
#
# CRUD over vault items with the field-level encryption policy:
#   - passwords and PINs are encrypted immediately before they are stored
#   - passwords are decrypted after reading, legacy plaintext shown as-is
#   - view / copy / edit / delete on an item with a PIN require that PIN
#
# Items live in memory; persisting them is the host application's job.

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from .encryption import VaultCrypto
from .exceptions import (
    EncryptionError,
    IncorrectPinError,
    ItemNotFoundError,
    ItemValidationError,
    NoPinSetError,
    PinRequiredError,
)
from .items import (
    Category,
    GatedAction,
    VaultItem,
    is_valid_pin,
    parse_category,
    validate_fields,
)
from .stored_secret import LegacyPlaintext
from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "username", "password", "website", "category", "notes", "pin")


@dataclass(frozen=True)
class ItemView:
    """
    An item as shown to its owner.

    ``password`` is the decrypted password, or None while the item has a
    PIN that was not supplied.
    """
    id: str
    title: str
    username: str
    password: Optional[str]
    website: str
    category: Category
    notes: str
    has_pin: bool
    password_is_legacy: bool = False


@dataclass(frozen=True)
class ItemPage:
    items: List[VaultItem]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


class VaultItemService:
    """
    Manages a user's vault items.

    Security:
    - Passwords and PINs only ever stored as envelopes (or untouched legacy values)
    - PIN gate in front of every sensitive per-item action
    - Audit logging for all item access; secret values never logged
    - Soft delete: deleted items stay stored but are invisible
    """

    def __init__(self, crypto: VaultCrypto, audit_logger: Optional[AuditLogger] = None):
        """
        Args:
            crypto: Encryption service holding the vault key
            audit_logger: Audit sink (default: global audit logger)
        """
        self.crypto = crypto
        self._audit_logger = audit_logger
        self._items: Dict[str, VaultItem] = {}
        self._lock = threading.RLock()

    @property
    def logger(self) -> AuditLogger:
        return self._audit_logger or get_audit_logger()

    # ── Create ──────────────────────────────────────────────────────

    def create_item(
        self,
        user_id: str,
        title: str,
        username: str,
        password: str,
        website: str,
        category: Optional[str] = None,
        notes: Optional[str] = "",
        pin: Optional[str] = None,
    ) -> VaultItem:
        """
        Encrypt and store a new item.

        Args:
            user_id: Owner
            title: Entry title (e.g., "Gmail Account")
            username: Login name or email
            password: Plaintext password (encrypted before storing)
            website: URL or bare domain
            category: social, work, finance, entertainment or other (default)
            notes: Free text
            pin: Optional 4-digit PIN (encrypted before storing)

        Returns:
            The stored item (password and PIN as envelopes)

        Raises:
            ItemValidationError: Field validation failed
            EncryptionError: Encryption failed; nothing was stored
        """
        validate_fields({
            "title": title, "username": username, "password": password,
            "website": website, "notes": notes, "pin": pin,
        })
        item_category = parse_category(category)

        encrypted_password = self._encrypt(self.crypto.encrypt_password, password, "password")
        encrypted_pin = self._encrypt(self.crypto.encrypt_pin, pin, "pin") if pin else None

        item = VaultItem(
            user_id=user_id,
            title=title.strip(),
            username=username.strip(),
            password=encrypted_password,
            website=website.strip(),
            category=item_category,
            notes=(notes or "").strip(),
            pin=encrypted_pin,
        )

        with self._lock:
            self._items[item.id] = item

        self.logger.log_vault_event(
            EventType.VAULT_ITEM_CREATED,
            f"Item added: {item.title}",
            details={"item_id": item.id, "category": item.category.value, "has_pin": item.has_pin},
            user_id=user_id,
        )
        return item.copy()

    # ── Read ────────────────────────────────────────────────────────

    def get_item(self, user_id: str, item_id: str) -> VaultItem:
        """Stored form of an item (envelopes, not plaintext)."""
        with self._lock:
            return self._get_active(user_id, item_id).copy()

    def read_item(self, user_id: str, item_id: str, pin: Optional[str] = None) -> ItemView:
        """
        Read an item for display.

        Items with a PIN come back with the password withheld unless ``pin``
        is given, in which case it must pass the VIEW gate. A password that
        does not decrypt is returned as stored (legacy plaintext) instead of
        failing the read.

        Raises:
            IncorrectPinError: ``pin`` given and does not match
        """
        with self._lock:
            item = self._get_active(user_id, item_id)
            if item.has_pin and not pin:
                return self._to_view(item.copy(), reveal=False)
            self._gate(item, GatedAction.VIEW, pin)
            item = item.copy()
        return self._to_view(item)

    def list_items(
        self,
        user_id: str,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        page: int = 1,
    ) -> ItemPage:
        """
        List a user's active items, newest first (passwords stay encrypted).

        Args:
            user_id: Owner
            category: Filter by category ("all" or None for no filter)
            search: Case-insensitive match on title, website, username, notes
            limit: Page size
            page: 1-based page number
        """
        if not isinstance(limit, int) or limit < 1 or not isinstance(page, int) or page < 1:
            raise ItemValidationError(["limit and page must be positive integers"])

        category_filter = None
        if category and category != "all":
            category_filter = parse_category(category)
        needle = search.lower() if search else None

        with self._lock:
            candidates = [i for i in self._items.values() if i.user_id == user_id and i.is_active]

        if category_filter is not None:
            candidates = [i for i in candidates if i.category == category_filter]
        if needle:
            candidates = [
                i for i in candidates
                if any(needle in (value or "").lower()
                       for value in (i.title, i.website, i.username, i.notes))
            ]

        # Reverse insertion order first so ties on created_at stay newest-first
        ordered = sorted(reversed(candidates), key=lambda i: i.created_at, reverse=True)
        start = (page - 1) * limit
        return ItemPage(
            items=[i.copy() for i in ordered[start:start + limit]],
            page=page,
            limit=limit,
            total=len(ordered),
        )

    # ── PIN gate ────────────────────────────────────────────────────

    def verify_item_pin(self, user_id: str, item_id: str, pin: str) -> bool:
        """
        Verify the PIN of an item and record the access.

        Raises:
            NoPinSetError: Item has no PIN
            IncorrectPinError: PIN does not match
        """
        with self._lock:
            item = self._get_active(user_id, item_id)
            if not item.has_pin:
                raise NoPinSetError(f"No PIN set for item {item_id}")
            self._check_pin(item, pin, action=None)
            self._record_access(item)
        return True

    def authorize(
        self,
        user_id: str,
        item_id: str,
        action: Union[GatedAction, str],
        pin: Optional[str] = None,
    ) -> None:
        """
        Enforce the PIN gate for ``action``. Items without a PIN always pass.

        Raises:
            PinRequiredError: Item has a PIN and none was supplied
            IncorrectPinError: Supplied PIN does not match
        """
        action = GatedAction(action)
        with self._lock:
            item = self._get_active(user_id, item_id)
            self._gate(item, action, pin)

    def reveal_password(
        self,
        user_id: str,
        item_id: str,
        pin: Optional[str] = None,
        action: Union[GatedAction, str] = GatedAction.VIEW,
    ) -> str:
        """
        View or copy an item's password, passing the PIN gate first.

        Returns:
            Plaintext password (or the stored value for legacy items)
        """
        action = GatedAction(action)
        if action not in (GatedAction.VIEW, GatedAction.COPY):
            raise ValueError(f"reveal_password does not perform {action.value}")

        with self._lock:
            item = self._get_active(user_id, item_id)
            self._gate(item, action, pin)
            self._record_access(item)
            item = item.copy()
        return self._to_view(item).password

    def perform(
        self,
        user_id: str,
        item_id: str,
        action: Union[GatedAction, str],
        pin: Optional[str] = None,
    ) -> Optional[str]:
        """
        Run a gated action on an item.

        VIEW and COPY return the revealed password, DELETE soft-deletes the
        item. EDIT only passes the gate; the change itself goes through
        update_item() with the same PIN.

        Raises:
            PinRequiredError: Item has a PIN and none was supplied
            IncorrectPinError: Supplied PIN does not match
        """
        action = GatedAction(action)
        if action in (GatedAction.VIEW, GatedAction.COPY):
            return self.reveal_password(user_id, item_id, pin=pin, action=action)
        if action is GatedAction.DELETE:
            self.delete_item(user_id, item_id, pin=pin)
            return None
        self.authorize(user_id, item_id, action, pin=pin)
        return None

    # ── Update / delete ─────────────────────────────────────────────

    def update_item(
        self,
        user_id: str,
        item_id: str,
        changes: Dict[str, Any],
        pin: Optional[str] = None,
    ) -> VaultItem:
        """
        Update an item behind the EDIT gate.

        Only fields present in ``changes`` are touched, and password / PIN
        are re-encrypted only when their value actually changes. A falsy
        ``changes["pin"]`` removes the PIN.

        Args:
            user_id: Owner
            item_id: Item to update
            changes: Subset of title, username, password, website, category, notes, pin
            pin: Current PIN, required when the item has one

        Raises:
            ItemValidationError: Unknown field or invalid value
            PinRequiredError / IncorrectPinError: Gate failed
            EncryptionError: Encryption failed; item unchanged
        """
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ItemValidationError(["Unknown fields: " + ", ".join(unknown)])
        validate_fields(changes, required=False)

        with self._lock:
            item = self._get_active(user_id, item_id)
            self._gate(item, GatedAction.EDIT, pin)

            updates: Dict[str, Any] = {}
            for name in ("title", "username", "website", "notes"):
                if changes.get(name) is not None:
                    updates[name] = changes[name].strip()
            if "category" in changes:
                updates["category"] = parse_category(changes["category"])

            if changes.get("password") is not None:
                new_password = changes["password"]
                if self._needs_encryption(item.password, new_password, "password"):
                    updates["password"] = self._encrypt(
                        self.crypto.encrypt_password, new_password, "password"
                    )

            if "pin" in changes:
                new_pin = changes["pin"]
                if not new_pin:
                    updates["pin"] = None
                elif not item.pin or self._needs_encryption(item.pin, new_pin, "PIN"):
                    updates["pin"] = self._encrypt(self.crypto.encrypt_pin, new_pin, "pin")

            updates["updated_at"] = datetime.utcnow()
            updated = item.copy(**updates)
            self._items[item_id] = updated

        self.logger.log_vault_event(
            EventType.VAULT_ITEM_UPDATED,
            f"Item updated: {updated.title}",
            details={"item_id": item_id, "fields": sorted(k for k in updates if k != "updated_at")},
            user_id=user_id,
        )
        return updated.copy()

    def delete_item(self, user_id: str, item_id: str, pin: Optional[str] = None) -> None:
        """Soft-delete an item behind the DELETE gate."""
        with self._lock:
            item = self._get_active(user_id, item_id)
            self._gate(item, GatedAction.DELETE, pin)
            self._items[item_id] = item.copy(is_active=False, updated_at=datetime.utcnow())

        self.logger.log_vault_event(
            EventType.VAULT_ITEM_DELETED,
            "Item deleted",
            details={"item_id": item_id},
            user_id=user_id,
        )

    def bulk_delete(self, user_id: str, item_ids: Iterable[str]) -> int:
        """
        Soft-delete several items at once.

        Items protected by a PIN are skipped: a single request cannot carry
        one PIN per item.

        Returns:
            Number of items deleted
        """
        item_ids = list(item_ids or [])
        if not item_ids:
            raise ItemValidationError(["Item IDs list is required"])

        deleted: List[str] = []
        skipped: List[str] = []
        with self._lock:
            now = datetime.utcnow()
            for item_id in item_ids:
                item = self._items.get(item_id)
                if item is None or item.user_id != user_id or not item.is_active:
                    continue
                if item.has_pin:
                    skipped.append(item_id)
                    continue
                self._items[item_id] = item.copy(is_active=False, updated_at=now)
                deleted.append(item_id)

        self.logger.log_vault_event(
            EventType.VAULT_ITEM_DELETED,
            f"{len(deleted)} items deleted",
            details={"item_ids": deleted, "skipped_pin_protected": skipped},
            user_id=user_id,
        )
        return len(deleted)

    # ── Stats ───────────────────────────────────────────────────────

    def stats(self, user_id: str) -> Dict[str, Any]:
        """Item counts per category for a user's active items."""
        with self._lock:
            items = [i for i in self._items.values() if i.user_id == user_id and i.is_active]

        by_category: Dict[str, Dict[str, Any]] = {}
        for item in items:
            entry = by_category.setdefault(item.category.value, {"count": 0, "last_updated": None})
            entry["count"] += 1
            if entry["last_updated"] is None or item.updated_at > entry["last_updated"]:
                entry["last_updated"] = item.updated_at
        for entry in by_category.values():
            entry["last_updated"] = entry["last_updated"].isoformat()

        return {
            "total": len(items),
            "by_category": by_category,
            "summary": {
                c.value: by_category.get(c.value, {}).get("count", 0) for c in Category
            },
        }

    # ── Internals ───────────────────────────────────────────────────

    def _get_active(self, user_id: str, item_id: str) -> VaultItem:
        item = self._items.get(item_id)
        if item is None or item.user_id != user_id or not item.is_active:
            raise ItemNotFoundError(f"Item not found: {item_id}")
        return item

    def _gate(self, item: VaultItem, action: GatedAction, pin: Optional[str]) -> None:
        if not item.has_pin:
            return
        if not pin:
            raise PinRequiredError(item.id, action.value)
        self._check_pin(item, pin, action)

    def _check_pin(self, item: VaultItem, pin: str, action: Optional[GatedAction]) -> None:
        details = {"item_id": item.id, "action": action.value if action else "verify"}
        if not is_valid_pin(pin) or not self.crypto.verify_pin(pin, item.pin, item_id=item.id):
            self.logger.log_event(
                event_type=EventType.VAULT_PIN_FAILED,
                severity=EventSeverity.INVESTIGATE,
                message="Incorrect PIN",
                details=details,
                user_context={"user_id": item.user_id},
            )
            raise IncorrectPinError("Incorrect PIN")
        self.logger.log_vault_event(
            EventType.VAULT_PIN_VERIFIED, "PIN verified", details=details, user_id=item.user_id
        )

    def _record_access(self, item: VaultItem) -> None:
        accessed = item.copy(
            last_accessed=datetime.utcnow(),
            access_count=item.access_count + 1,
        )
        self._items[item.id] = accessed
        self.logger.log_vault_event(
            EventType.VAULT_ITEM_ACCESSED,
            f"Item accessed: {item.title}",
            details={"item_id": item.id},
            user_id=item.user_id,
        )

    def _needs_encryption(self, stored: str, new_value: str, field: str) -> bool:
        """True unless ``stored`` is an envelope that already holds ``new_value``."""
        current = self.crypto.classify(stored, field=field)
        return isinstance(current, LegacyPlaintext) or current.plaintext != new_value

    def _encrypt(self, encrypt, value: str, field: str) -> str:
        try:
            return encrypt(value)
        except EncryptionError:
            self.logger.log_event(
                event_type=EventType.VAULT_CRYPTO_ERROR,
                severity=EventSeverity.CRITICAL,
                message=f"Failed to encrypt {field}; item not saved",
                details={"field": field},
            )
            raise

    def _to_view(self, item: VaultItem, reveal: bool = True) -> ItemView:
        stored = self.crypto.classify(item.password, field="password")
        if reveal and isinstance(stored, LegacyPlaintext):
            logger.warning("Password for item %s did not decrypt; showing stored value", item.id)
            self.logger.log_event(
                event_type=EventType.VAULT_LEGACY_PLAINTEXT,
                severity=EventSeverity.INVESTIGATE,
                message="Legacy plaintext password displayed as stored",
                details={"item_id": item.id, "field": "password"},
                user_context={"user_id": item.user_id},
            )
        return ItemView(
            id=item.id,
            title=item.title,
            username=item.username,
            password=stored.display_value if reveal else None,
            website=item.website,
            category=item.category,
            notes=item.notes,
            has_pin=item.has_pin,
            password_is_legacy=stored.is_legacy,
        )
