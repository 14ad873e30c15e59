"""Process-wide repository accessors bound to the configured database file."""

import config
from infrastructure.repositories.sqlite_audit_repository import SQLiteAuditRepository
from infrastructure.repositories.sqlite_profile_repository import SQLiteProfileRepository
from infrastructure.repositories.sqlite_report_repository import SQLiteReportRepository
from infrastructure.repositories.sqlite_rewards_repository import SQLiteRewardsRepository
from infrastructure.repositories.sqlite_settings_repository import SQLiteSettingsRepository

# Tests point this at a tmp_path database; None means "use config".
DB_PATH = None

_repos = {}


def get_db_path() -> str:
    return DB_PATH or config.get_db_path()


def _get(repo_cls):
    db_path = get_db_path()
    repo = _repos.get(repo_cls)
    if repo is None or repo.db_path != db_path:
        repo = repo_cls(db_path)
        _repos[repo_cls] = repo
    return repo


def get_profile_repo() -> SQLiteProfileRepository:
    return _get(SQLiteProfileRepository)


def get_report_repo() -> SQLiteReportRepository:
    return _get(SQLiteReportRepository)


def get_rewards_repo() -> SQLiteRewardsRepository:
    return _get(SQLiteRewardsRepository)


def get_settings_repo() -> SQLiteSettingsRepository:
    return _get(SQLiteSettingsRepository)


def get_audit_repo() -> SQLiteAuditRepository:
    return _get(SQLiteAuditRepository)
