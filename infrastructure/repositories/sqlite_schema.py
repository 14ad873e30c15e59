import sqlite3


def _get_current_version(conn) -> int:
    row = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='schema_info'").fetchone()
    if row:
        version_row = conn.execute("SELECT version FROM schema_info").fetchone()
        if version_row:
            return version_row[0]
    return 0


def _migrate_v1(conn):
    """Identity provider and profile tables (v1)."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS identities (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE COLLATE NOCASE,
            password_salt TEXT NOT NULL,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id TEXT PRIMARY KEY REFERENCES identities(id) ON DELETE CASCADE,
            user_type TEXT NOT NULL DEFAULT 'user',
            is_approved INTEGER NOT NULL DEFAULT 0,
            first_name TEXT,
            last_name TEXT,
            company_name TEXT,
            business_license TEXT,
            points INTEGER NOT NULL DEFAULT 0 CHECK (points >= 0),
            avatar_url TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS sessions (
            token TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES identities(id) ON DELETE CASCADE,
            expires_at TEXT NOT NULL,
            created_at TEXT NOT NULL,
            last_seen_at TEXT NOT NULL,
            ua_hash TEXT
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS login_attempts (
            email TEXT PRIMARY KEY COLLATE NOCASE,
            attempts INTEGER DEFAULT 0,
            last_attempt TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS password_resets (
            token_hash TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES identities(id) ON DELETE CASCADE,
            expires_at TEXT NOT NULL,
            used_at TEXT
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ts TEXT NOT NULL,
            actor_user_id TEXT,
            actor_role TEXT,
            action TEXT NOT NULL,
            target_type TEXT NOT NULL,
            target_id TEXT,
            metadata_json TEXT,
            ip_address TEXT,
            result TEXT NOT NULL
        )
    """)


def _migrate_v2(conn):
    """Waste reports, reward catalog, redemptions and settings (v2)."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS waste_reports (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            waste_type TEXT NOT NULL,
            weight REAL NOT NULL CHECK (weight > 0),
            location TEXT,
            image_url TEXT,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'approved', 'rejected')),
            agent_id TEXT REFERENCES profiles(id),
            points_awarded INTEGER,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_waste_reports_user ON waste_reports(user_id)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_waste_reports_status ON waste_reports(status)")
    conn.execute("""
        CREATE TABLE IF NOT EXISTS rewards (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            category TEXT,
            points_required INTEGER NOT NULL CHECK (points_required > 0),
            available_quantity INTEGER NOT NULL DEFAULT 0 CHECK (available_quantity >= 0),
            image_url TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS user_rewards (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            reward_id TEXT NOT NULL REFERENCES rewards(id),
            points_spent INTEGER NOT NULL,
            redeemed_at TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS system_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)


MIGRATIONS = [_migrate_v1, _migrate_v2]
SCHEMA_VERSION = len(MIGRATIONS)


def init_db(db_path: str) -> int:
    """Bring the database at db_path up to SCHEMA_VERSION and return it."""
    with sqlite3.connect(db_path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_info (
                version INTEGER NOT NULL
            )
        """)
        current_version = _get_current_version(conn)

        has_version_row = conn.execute("SELECT COUNT(*) FROM schema_info").fetchone()[0] > 0
        if not has_version_row:
            conn.execute("INSERT INTO schema_info (version) VALUES (?)", (current_version,))

        for i in range(current_version, len(MIGRATIONS)):
            target_version = i + 1
            try:
                MIGRATIONS[i](conn)
                conn.execute("UPDATE schema_info SET version = ?", (target_version,))
            except Exception as e:
                raise RuntimeError(f"Database migration to v{target_version} failed: {e}") from e

        conn.commit()
    return SCHEMA_VERSION
