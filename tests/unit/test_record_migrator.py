"""Unit tests for the per-record user and lead migrators."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from legacy_migration.loaders.base import LEADS, USERS, check_password
from legacy_migration.models.record import RecordStatus
from legacy_migration.services.identity import IdentityResolver
from legacy_migration.services.record_migrator import LeadMigrator, UserMigrator
from tests.conftest import FIXED_NOW
from tests.fakes import FakeTargetStore

LEGACY_HASH = "$2b$12$KIXQJxZxUjPq1bFf0vYhNeb0T1r1Rk3Z1a5c0kYFhQe4m1yX0bq7S"
CREATED = datetime(2024, 2, 1, 10, 0, 0)


def _lead(email: str = "lead@x.com", created: datetime | None = CREATED, **fields: object) -> dict:
    raw: dict = {"email": email, "name": "Lead", **fields}
    if created is not None:
        raw["createdAt"] = created.isoformat() + "Z"
    return raw


def test_user_with_password_uses_trusted_import(store: FakeTargetStore, clock) -> None:
    """Legacy hashes are written verbatim through the trusted path."""
    outcome = UserMigrator(store, clock=clock).migrate(
        {"email": "a@x.com", "password": LEGACY_HASH, "name": "A"}
    )

    assert outcome.status == RecordStatus.MIGRATED
    assert outcome.target_id is not None
    saved = store.find_one(USERS, {"email": "a@x.com"})
    assert saved["password"] == LEGACY_HASH
    assert saved["_id"] == outcome.target_id
    assert saved["createdAt"] == FIXED_NOW
    assert store.trusted_inserts == 1
    assert store.validated_inserts == 0


def test_user_without_password_uses_validated_create(store: FakeTargetStore, clock) -> None:
    """Users with no legacy secret go through the normal create path."""
    outcome = UserMigrator(store, clock=clock).migrate({"email": "nopass@x.com", "name": "N"})

    assert outcome.status == RecordStatus.MIGRATED
    saved = store.find_one(USERS, {"email": "nopass@x.com"})
    assert "password" not in saved
    assert saved["passwordResetRequired"] is True
    assert store.validated_inserts == 1
    assert store.trusted_inserts == 0


def test_validated_create_hashes_plaintext(store: FakeTargetStore) -> None:
    """The validated path hashes, unlike the trusted path."""
    store.insert(USERS, {"email": "p@x.com", "password": "Secret123"})

    saved = store.find_one(USERS, {"email": "p@x.com"})
    assert saved["password"] != "Secret123"
    assert check_password("Secret123", saved["password"])
    assert saved["lastPasswordChange"] is not None


def test_user_with_existing_email_is_skipped(store: FakeTargetStore) -> None:
    """Dedup on exact email leaves the target untouched."""
    store.seed(USERS, {"email": "a@x.com", "name": "Existing"})

    outcome = UserMigrator(store).migrate({"email": "A@X.com", "password": LEGACY_HASH})

    assert outcome.status == RecordStatus.SKIPPED
    assert outcome.reason == "already exists"
    assert store.count(USERS, {}) == 1
    assert store.trusted_inserts == 0


def test_bad_record_does_not_abort_batch(store: FakeTargetStore) -> None:
    """Invalid records are errored and the batch carries on."""
    result = UserMigrator(store).migrate_all([
        {"email": "ok1@x.com", "password": "h1"},
        {"email": "not-an-email"},
        "not even an object",
        {"email": "ok2@x.com", "password": "h2", "createdAt": "yesterday-ish"},
        {"email": "ok3@x.com", "password": "h3"},
    ])

    assert result.stats.total == 5
    assert result.stats.migrated == 2
    assert result.stats.errored == 3
    assert result.stats.skipped == 0
    assert [o.natural_key for o in result.errors] == ["not-an-email", "<unknown>", "ok2@x.com"]
    assert all(o.error for o in result.errors)


def test_insert_failure_is_errored_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    """A store failure on insert is classified as errored with its reason."""
    store = FakeTargetStore(fail_emails={"bad@x.com"})

    result = UserMigrator(store).migrate_all([
        {"email": "bad@x.com", "password": "h1"},
        {"email": "good@x.com", "password": "h2"},
    ])

    assert result.stats.errored == 1
    assert result.stats.migrated == 1
    assert "bad@x.com" in caplog.text
    assert "write rejected" in result.errors[0].error


def test_duplicate_key_on_insert_is_skipped() -> None:
    """A unique-constraint violation means another writer got there first."""
    store = FakeTargetStore(unique_fields={USERS: "email"})
    store.seed(USERS, {"email": "a@x.com"})
    migrator = UserMigrator(store)
    # Bypass the dedup read to simulate a concurrent insert
    migrator.dedup_filter = lambda record: {"email": "nobody"}

    outcome = migrator.migrate({"email": "a@x.com", "password": "h1"})

    assert outcome.status == RecordStatus.SKIPPED
    assert outcome.reason == "duplicate key"


def test_dry_run_writes_nothing(store: FakeTargetStore) -> None:
    """Dry runs count would-be inserts without writing."""
    result = UserMigrator(store, dry_run=True).migrate_all([{"email": "a@x.com", "password": "h1"}])

    assert result.stats.migrated == 1
    assert store.count(USERS, {}) == 0


@pytest.mark.parametrize(
    ("offset_ms", "expected"),
    [
        (0, RecordStatus.SKIPPED),
        (999, RecordStatus.SKIPPED),
        (-1000, RecordStatus.SKIPPED),
        (1000, RecordStatus.SKIPPED),
        (1001, RecordStatus.MIGRATED),
        (-5000, RecordStatus.MIGRATED),
    ],
)
def test_lead_dedup_window(store: FakeTargetStore, offset_ms: int, expected: RecordStatus) -> None:
    """Leads match on email and createdAt within one second either way."""
    store.seed(LEADS, {"email": "lead@x.com", "createdAt": CREATED + timedelta(milliseconds=offset_ms)})

    outcome = LeadMigrator(store).migrate(_lead())

    assert outcome.status == expected


def test_lead_with_other_email_is_not_a_duplicate(store: FakeTargetStore) -> None:
    """The window only applies to leads with the same email."""
    store.seed(LEADS, {"email": "other@x.com", "createdAt": CREATED})

    assert LeadMigrator(store).migrate(_lead()).status == RecordStatus.MIGRATED


def test_lead_without_timestamp_dedups_on_email(store: FakeTargetStore) -> None:
    """Without a legacy createdAt there is no window to match on."""
    migrator = LeadMigrator(store)

    first = migrator.migrate(_lead(created=None))
    second = migrator.migrate(_lead(created=None))

    assert first.status == RecordStatus.MIGRATED
    assert second.status == RecordStatus.SKIPPED


def test_lead_assignee_remapped_by_unique_name(store: FakeTargetStore) -> None:
    """assignedTo points at the single user with the given display name."""
    jane = store.seed(USERS, {"email": "jane@x.com", "name": "Jane Doe"})
    assignees = IdentityResolver.build(store, USERS, key_field="name")

    LeadMigrator(store, assignees=assignees).migrate(
        _lead(assignedTo="legacy-uuid-1", assignedToName="Jane Doe")
    )

    saved = store.find_one(LEADS, {"email": "lead@x.com"})
    assert saved["assignedTo"] == jane
    assert saved["assignedToName"] == "Jane Doe"


@pytest.mark.parametrize("jane_count", [0, 2])
def test_lead_assignee_unresolved_keeps_name(store: FakeTargetStore, jane_count: int) -> None:
    """No match or an ambiguous match leaves assignedTo empty but keeps the name."""
    for i in range(jane_count):
        store.seed(USERS, {"email": f"jane{i}@x.com", "name": "Jane Doe"})
    assignees = IdentityResolver.build(store, USERS, key_field="name")

    outcome = LeadMigrator(store, assignees=assignees).migrate(_lead(assignedToName="Jane Doe"))

    assert outcome.status == RecordStatus.MIGRATED
    saved = store.find_one(LEADS, {"email": "lead@x.com"})
    assert saved["assignedTo"] is None
    assert saved["assignedToName"] == "Jane Doe"


def test_lead_goes_through_validated_create(store: FakeTargetStore) -> None:
    """Leads carry no secrets and use the normal create path."""
    LeadMigrator(store).migrate(_lead())

    assert store.validated_inserts == 1
    assert store.trusted_inserts == 0


@pytest.mark.parametrize(
    "fields",
    [{"status": "bogus"}, {"name": None}, {"name": "  "}],
)
def test_lead_failing_model_rules_is_errored(store: FakeTargetStore, fields: dict) -> None:
    """A lead the target model would reject is counted as an error, not written."""
    outcome = LeadMigrator(store).migrate(_lead(**fields))

    assert outcome.status == RecordStatus.ERRORED
    assert store.count(LEADS, {}) == 0


def test_lead_keeps_non_numeric_crm_id(store: FakeTargetStore) -> None:
    LeadMigrator(store).migrate(_lead(odooLeadId="crm-42"))

    assert store.find_one(LEADS, {"email": "lead@x.com"})["odooLeadId"] == "crm-42"


def test_user_with_unknown_role_is_errored(store: FakeTargetStore) -> None:
    outcome = UserMigrator(store).migrate({"email": "a@x.com", "password": "h", "role": "superuser"})

    assert outcome.status == RecordStatus.ERRORED
    assert "role" in outcome.error
    assert store.count(USERS, {}) == 0
