"""Typed intermediate models for records read from the legacy JSON store.

Every defaulting and coercion rule for legacy fields lives here, so a raw
record is fully normalised before any dedup or insert logic sees it.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

UserRole = Literal["admin", "agent"]
LeadStatus = Literal["new", "contacted", "qualified", "viewing", "negotiating", "won", "lost"]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the MongoDB driver's convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_legacy_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a legacy timestamp into a naive UTC datetime.

    Accepts ISO-8601 strings, free-form date strings, epoch milliseconds and
    datetime objects. Empty values parse to None.

    Raises:
        ValueError: If the value cannot be interpreted as a date
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ValueError(f"Not a date: {value!r}")
    elif isinstance(value, (int, float)):
        # JavaScript Date values are milliseconds since the epoch
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    elif isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value.strip())
        except ValueError:
            try:
                parsed = date_parser.parse(value)
            except (ValueError, OverflowError) as e:
                raise ValueError(f"Unparseable date: {value!r}") from e
    else:
        raise ValueError(f"Not a date: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def normalize_email(value: Any) -> Any:
    """Trim and lower-case an email; non-strings are left for type validation."""
    if isinstance(value, str):
        value = value.strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError(f"Invalid email format: {value!r}")
    return value


def _coerce_str(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _coerce_external_id(value: Any) -> Any:
    """Falsy ids become None; numeric ids become strings."""
    if not value:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _coerce_str(value)


def _normalize_choice(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


class LegacyRecord(BaseModel):
    """Base for legacy records; unknown legacy fields are dropped."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def natural_key(self) -> str:
        return getattr(self, "email", "")


class LegacyUser(LegacyRecord):
    """A user record from users.json."""
    email: str
    password: Optional[str] = None
    name: Optional[str] = None
    role: UserRole = "agent"
    is_active: bool = Field(True, alias="isActive")
    is_verified: bool = Field(False, alias="isVerified")
    last_login: Optional[datetime] = Field(None, alias="lastLogin")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    phone: Optional[str] = None
    department: Optional[str] = None

    check_email = field_validator("email", mode="before")(normalize_email)
    parse_dates = field_validator("last_login", "created_at", mode="before")(parse_legacy_datetime)
    phone_to_str = field_validator("phone", mode="before")(_coerce_str)

    @field_validator("role", mode="before")
    @classmethod
    def default_role(cls, value: Any) -> Any:
        if value is None or value == "":
            return "agent"
        return _normalize_choice(value)

    @field_validator("is_active", mode="before")
    @classmethod
    def default_active(cls, value: Any) -> Any:
        return True if value is None else value

    @field_validator("is_verified", mode="before")
    @classmethod
    def default_verified(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def has_password(self) -> bool:
        return bool(self.password)

    def to_document(self, now: datetime) -> Dict[str, Any]:
        """Build the target users document; the password is copied verbatim."""
        created_at = self.created_at or now
        document: Dict[str, Any] = {
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "isActive": self.is_active,
            "isVerified": self.is_verified,
            "lastLogin": self.last_login,
            "createdAt": created_at,
            "updatedAt": created_at,
        }
        if self.phone is not None:
            document["phone"] = self.phone
        if self.department is not None:
            document["department"] = self.department

        if self.has_password:
            document["password"] = self.password
        else:
            document["passwordResetRequired"] = True
        return document


class LegacyLead(LegacyRecord):
    """A lead record from the `leads` list in leads.json."""
    email: str
    name: str
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    status: LeadStatus = "new"
    source: str = "website_contact_form"
    synced_to_odoo: bool = Field(False, alias="syncedToOdoo")
    odoo_lead_id: Optional[str] = Field(None, alias="odooLeadId")
    synced_at: Optional[datetime] = Field(None, alias="syncedAt")
    assigned_to_name: Optional[str] = Field(None, alias="assignedToName")
    assigned_at: Optional[datetime] = Field(None, alias="assignedAt")
    last_contacted_at: Optional[datetime] = Field(None, alias="lastContactedAt")
    last_note: Optional[str] = Field(None, alias="lastNote")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    activities: List[Any] = Field(default_factory=list)
    viewings: List[Any] = Field(default_factory=list)
    interested_properties: List[Any] = Field(default_factory=list, alias="interestedProperties")

    check_email = field_validator("email", mode="before")(normalize_email)
    parse_dates = field_validator(
        "synced_at", "assigned_at", "last_contacted_at", "created_at", "updated_at",
        mode="before",
    )(parse_legacy_datetime)
    phones_to_str = field_validator("phone_number", "phone", mode="before")(_coerce_str)
    coerce_odoo_id = field_validator("odoo_lead_id", mode="before")(_coerce_external_id)

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("Name is required")
        return value

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value: Any) -> Any:
        return _normalize_choice(value) or "new"

    @field_validator("source", mode="before")
    @classmethod
    def default_source(cls, value: Any) -> Any:
        return value or "website_contact_form"

    @field_validator("synced_to_odoo", mode="before")
    @classmethod
    def default_synced(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("activities", "viewings", "interested_properties", mode="before")
    @classmethod
    def default_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def has_timestamp(self) -> bool:
        """Whether the legacy record carried its own creation time."""
        return self.created_at is not None

    def to_document(self, now: datetime, assigned_to: Optional[Any] = None) -> Dict[str, Any]:
        """Build the target leads document with a resolved assignee id."""
        created_at = self.created_at or now
        return {
            "name": self.name,
            "email": self.email,
            "phoneNumber": self.phone_number or self.phone,
            "subject": self.subject,
            "message": self.message,
            "status": self.status,
            "source": self.source,
            "syncedToOdoo": self.synced_to_odoo,
            "odooLeadId": self.odoo_lead_id,
            "syncedAt": self.synced_at,
            "assignedTo": assigned_to,
            "assignedToName": self.assigned_to_name,
            "assignedAt": self.assigned_at,
            "lastContactedAt": self.last_contacted_at,
            "lastNote": self.last_note,
            "createdAt": created_at,
            "updatedAt": self.updated_at or created_at,
            "activities": self.activities,
            "viewings": self.viewings,
            "interestedProperties": self.interested_properties,
        }
