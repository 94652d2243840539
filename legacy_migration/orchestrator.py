"""Migration orchestrator - sequences the phases of a legacy store migration."""

import json
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

from .config import MigrationConfig
from .extractors.json_reader import SourceReader
from .loaders.base import TargetStore, USERS, LEADS
from .loaders.mongo_loader import MongoTargetStore
from .models.legacy import utcnow
from .models.migration import MigrationReport, MigrationStatus, PhaseResult
from .services.backup import BackupManager
from .services.identity import AmbiguityPolicy, IdentityResolver
from .services.invariants import ensure_admin
from .services.record_migrator import LeadMigrator, UserMigrator

logger = logging.getLogger(__name__)

StoreFactory = Callable[[MigrationConfig], TargetStore]


def create_mongo_store(config: MigrationConfig) -> TargetStore:
    """Default store factory: a MongoDB client built from the config."""
    return MongoTargetStore(
        uri=config.mongodb_uri,
        database=config.database,
        timeout_ms=config.timeout_ms,
        bcrypt_rounds=config.bcrypt_rounds,
    )


class MigrationOrchestrator:
    """
    Orchestrates a complete migration run.

    Handles:
    - Precondition checks before any work
    - Backup of the legacy files before any write
    - Users, then Leads with assignee remapping
    - Default administrator repair
    - Reporting

    The target store is acquired once and released exactly once, whatever
    happens after acquisition.
    """

    def __init__(
        self,
        config: MigrationConfig,
        store_factory: Optional[StoreFactory] = None,
        reader: Optional[SourceReader] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            store_factory: Builds the target store (defaults to MongoDB)
            reader: Legacy file reader
        """
        self.config = config
        self.store_factory = store_factory or create_mongo_store
        self.reader = reader or SourceReader()
        self.backups = BackupManager(config.backup_dir)
        self.report: Optional[MigrationReport] = None

    def run(self) -> MigrationReport:
        """
        Run the complete migration.

        Returns:
            MigrationReport with per-entity statistics

        Raises:
            ConfigurationError: If the target store is not configured
            TargetStoreUnavailableError: If the target store cannot be reached
            BackupError: If the legacy files cannot be backed up
            SourceReadError: If a legacy file is malformed
            InvariantRepairError: If the default admin cannot be created
        """
        self.config.validate()

        self.report = MigrationReport(dry_run=self.config.dry_run)
        self.report.started_at = utcnow()

        store = self.store_factory(self.config)
        try:
            store.ping()
            self.report.database = store.name

            # Both documents are parsed before the backup and the first write
            users = self.reader.read_users(self.config.users_file)
            leads = self.reader.read_leads(self.config.leads_file)

            logger.info("=== PHASE 1: BACKUP ===")
            self.report.status = MigrationStatus.BACKING_UP
            backup = self.backups.backup([self.config.users_file, self.config.leads_file])
            self.report.backup_files = backup.created

            if not self.config.dry_run:
                store.ensure_indexes()

            self.report.status = MigrationStatus.MIGRATING
            logger.info("=== PHASE 2: USERS ===")
            self.report.add_phase(self._migrate_users(store, users))

            logger.info("=== PHASE 3: LEADS ===")
            self.report.add_phase(self._migrate_leads(store, leads))

            logger.info("=== PHASE 4: ADMIN CHECK ===")
            self.report.status = MigrationStatus.REPAIRING
            admin_id = ensure_admin(
                store,
                email=self.config.default_admin_email,
                password=self.config.default_admin_password,
                name=self.config.default_admin_name,
                dry_run=self.config.dry_run,
            )
            self.report.admin_created = admin_id is not None
            self.report.admin_id = str(admin_id) if admin_id is not None else None

            self.report.check_invariants()
            self.report.finish(MigrationStatus.COMPLETED)
            logger.info("=== MIGRATION COMPLETED ===")

        except Exception as e:
            logger.error(f"Migration failed: {e}")
            self.report.finish(MigrationStatus.FAILED)
            raise

        finally:
            store.close()

        self._save_report()
        return self.report

    def run_backup(self) -> List[str]:
        """Back up the legacy files without touching the target store."""
        result = self.backups.backup([self.config.users_file, self.config.leads_file])
        return result.created

    def _migrate_users(self, store: TargetStore, users: List[Any]) -> PhaseResult:
        if not users:
            logger.warning("No users data found in legacy store")
            return PhaseResult.empty(USERS)

        logger.info(f"Found {len(users)} users to migrate")
        migrator = UserMigrator(store, dry_run=self.config.dry_run)
        return migrator.migrate_all(users)

    def _migrate_leads(self, store: TargetStore, leads: List[Any]) -> PhaseResult:
        if not leads:
            logger.warning("No leads data found in legacy store")
            return PhaseResult.empty(LEADS)

        # Rebuilt here so users inserted in this run resolve
        assignees = IdentityResolver.build(
            store,
            USERS,
            key_field="name",
            policy=AmbiguityPolicy(self.config.assignment_tie_break),
        )
        logger.info(f"Found {len(leads)} leads to migrate ({len(assignees)} assignable users)")

        migrator = LeadMigrator(store, assignees=assignees, dry_run=self.config.dry_run)
        return migrator.migrate_all(leads)

    def _save_report(self) -> Optional[Path]:
        """Save the migration report as JSON."""
        report_dir = Path(self.config.report_dir)
        filepath = report_dir / f"migration_report_{utcnow().strftime('%Y%m%d_%H%M%S')}.json"
        try:
            report_dir.mkdir(parents=True, exist_ok=True)
            with open(filepath, "w") as f:
                json.dump(self.report.to_dict(), f, indent=2, default=str)
        except OSError as e:
            logger.error(f"Could not save migration report to {filepath}: {e}")
            return None

        logger.info(f"Saved migration report to {filepath}")
        return filepath

