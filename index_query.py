#!/usr/bin/env python

import argparse
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional


def connect_db(db_path: Path) -> sqlite3.Connection:
    if not db_path.exists():
        raise SystemExit(f"Index not found: {db_path}")
    return sqlite3.connect(db_path)


def _fmt_ts(ts: Optional[int]) -> str:
    if ts is None:
        return ""
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def list_runs(conn: sqlite3.Connection):
    cur = conn.cursor()
    cur.execute("""
        SELECT lastseen, COUNT(*), SUM(content_hash_b IS NOT NULL)
        FROM files
        GROUP BY lastseen
        ORDER BY lastseen
    """)
    rows = cur.fetchall()
    if not rows:
        print("Index is empty.")
        return

    print("run (lastseen)       | started             | entries | regular files")
    print("---------------------+---------------------+---------+--------------")
    for lastseen, entries, regular in rows:
        print(f"{lastseen:20d} | {_fmt_ts(lastseen)} | {entries:7d} | {regular or 0:13d}")


def show_path_history(conn: sqlite3.Connection, path: str):
    cur = conn.cursor()
    cur.execute("""
        SELECT lastseen, inserted, size, mode, modified, created, content_hash_b, sniffed_mime_type
        FROM files
        WHERE path = ?
        ORDER BY lastseen, id
    """, (path,))
    rows = cur.fetchall()
    if not rows:
        print(f"No records for path: {path}")
        return

    print(f"History of {path}:")
    print("run                 | inserted            | size       | mode     | modified            | created             | sha256 (prefix)  | sniffed")
    print("--------------------+---------------------+------------+----------+---------------------+---------------------+------------------+--------")
    for lastseen, inserted, size, mode, modified, created, digest, sniffed in rows:
        print(f"{_fmt_ts(lastseen)} | {_fmt_ts(inserted)} | {str(size).rjust(10)} | {oct(mode)[2:].rjust(8)} | "
              f"{_fmt_ts(modified)} | {_fmt_ts(created).ljust(19)} | {(digest or '')[:16].ljust(16)} | {sniffed or ''}")


def list_duplicate_content(conn: sqlite3.Connection, lastseen: Optional[int] = None):
    """Content shared by more than one path within a single run (latest run by default)."""
    cur = conn.cursor()
    if lastseen is None:
        cur.execute("SELECT MAX(lastseen) FROM files")
        lastseen = cur.fetchone()[0]
        if lastseen is None:
            print("Index is empty.")
            return

    cur.execute("""
        SELECT content_hash_b, COUNT(*), MAX(size)
        FROM files
        WHERE lastseen = ? AND content_hash_b IS NOT NULL
        GROUP BY content_hash_b
        HAVING COUNT(*) > 1
        ORDER BY MAX(size) DESC
    """, (lastseen,))
    groups = cur.fetchall()
    if not groups:
        print(f"No duplicate content in run {lastseen}.")
        return

    print(f"Duplicate content in run {lastseen} ({_fmt_ts(lastseen)}):")
    for digest, count, size in groups:
        print(f"\n  {digest}  ({count} copies, {size} bytes)")
        cur.execute("""
            SELECT path FROM files
            WHERE lastseen = ? AND content_hash_b = ?
            ORDER BY path
        """, (lastseen, digest))
        for (path,) in cur.fetchall():
            print(f"    {path}")


def parse_args():
    p = argparse.ArgumentParser(description="Query helper for a tree_indexer SQLite index.")
    p.add_argument("--db", required=True, help="Path to the index (e.g. files-20240131.db)")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--runs", action="store_true", help="List runs with their entry counts")
    group.add_argument("--history", metavar="PATH", help="Show every record stored for a path")
    group.add_argument("--dupes", action="store_true", help="List content shared by several paths")
    p.add_argument("--run", type=int, default=None, help="Run (lastseen) for --dupes; defaults to the latest")
    return p.parse_args()


def main():
    args = parse_args()
    db_path = Path(args.db).resolve()
    conn = connect_db(db_path)

    try:
        if args.runs:
            list_runs(conn)
        elif args.history:
            show_path_history(conn, str(Path(args.history).absolute()))
        elif args.dupes:
            list_duplicate_content(conn, args.run)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
