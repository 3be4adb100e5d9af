"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1

def init_schema(conn: sqlite3.Connection):
    """
    Applies the index schema to the database.
    Idempotent: safe to run on every startup.
    """
    with conn:
        # 1. Version Tracking (For future migrations)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 2. Fingerprint Table
        # Append-only: one row per visited path per run, no uniqueness on path.
        conn.execute("""
        CREATE TABLE IF NOT EXISTS files (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            path                TEXT NOT NULL,
            dir                 TEXT NOT NULL,
            file                TEXT NOT NULL,
            ext                 TEXT,

            inserted            INTEGER NOT NULL,
            deleted             INTEGER,              -- reserved, never written by the scanner
            lastseen            INTEGER NOT NULL,

            modified            INTEGER NOT NULL,
            changed             INTEGER NOT NULL,
            accessed            INTEGER NOT NULL,
            created             INTEGER,

            size                INTEGER NOT NULL,
            mode                INTEGER NOT NULL,
            uid                 INTEGER NOT NULL,
            gid                 INTEGER NOT NULL,
            dev                 INTEGER,
            links               INTEGER,

            content_hash_a      TEXT,                 -- MD5 by default
            content_hash_b      TEXT,                 -- SHA-256 by default
            magic_mime_type     TEXT,
            magic_charset       TEXT,
            sniffed_mime_type   TEXT,
            sniffed_charset     TEXT,
            extension_mime_type TEXT
        );
        """)

        # 3. Indices for Performance
        conn.execute("CREATE INDEX IF NOT EXISTS idx_files_path ON files(path);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_files_lastseen ON files(lastseen);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_files_content_hash_b ON files(content_hash_b);")

    logging.debug("Database schema initialized.")
