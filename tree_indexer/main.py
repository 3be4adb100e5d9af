import argparse
import logging
import sys
from pathlib import Path

from . import config
from .config import ErrorPolicy, ScanSettings
from .core import TreeIndexerApp

def setup_logging(log_dir: Path, verbose: bool):
    """Sets up logging to both console and a file beside the index."""
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / config.LOG_FILE_NAME

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )

def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Tree Indexer: fingerprint every entry of a directory tree into SQLite")

    p.add_argument("-r", "--rootdir", type=Path, default=config.DEFAULT_ROOT, help="The top directory to be parsed")
    p.add_argument("-d", "--db", type=Path, default=config.DEFAULT_INDEX_PATH, help="The SQLite index file")
    p.add_argument("-D", dest="no_date_suffix", action="store_true",
                   help="Don't add a -YYYYMMDD date suffix to the index file name")
    p.add_argument("--on-error", choices=[policy.value for policy in ErrorPolicy], default=ErrorPolicy.ABORT.value,
                   help="abort the whole run on the first unreadable path (default) or skip it")
    p.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    # Positional leftovers are rejected by argparse itself
    return p.parse_args(argv)

def build_settings(args) -> ScanSettings:
    return ScanSettings(
        root=args.rootdir.resolve(),
        index_path=args.db,
        date_suffixed=not args.no_date_suffix,
        error_policy=ErrorPolicy(args.on_error),
        show_progress=not args.no_progress,
    )

def main(argv=None):
    args = parse_args(argv)

    # 1. Config
    settings = build_settings(args)
    app = TreeIndexerApp(settings)

    # 2. Setup
    setup_logging(app.index_path.parent, args.verbose)

    logging.info("=== Tree Indexer Started ===")
    logging.info(f"Root:  {settings.root}")
    logging.info(f"Index: {app.index_path}")

    # 3. Execution
    try:
        summary = app.run()
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception("Fatal error during scan.")
        sys.exit(1)

    logging.info(f"Run {summary.lastseen}: {summary.records} records, {summary.skipped} skipped.")

if __name__ == "__main__":
    main()
