from __future__ import annotations

import argparse
import json
import os
import sys
import time
from contextlib import closing
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.shipments import ShipmentStoreError, ensure_schema
from ..excel.disambiguate import MissingColumnsError
from ..excel.export import write_normalized_workbook
from ..excel.header import SheetHeaderError
from ..excel.reader import WorkbookReadError
from ..excel.shipment_parser import parse_shipment_workbook
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import ImportSettings
from ..models.import_result import ImportResult, ImportStatus
from ..services.importer import import_shipments
from ..services.progress import ProgressTracker
from ..services.summary import render_file_line, render_summary_line

"""CLI entrypoint: ``python -m shipment_import.cli FILE_OR_DIR ...``

- Load .env (python-dotenv, override) and the YAML config
- Collect .xlsx files (directories are scanned non-recursively)
- Import each file in its own transaction, or run --inspect / --export-normalized
- Print one line per file and the SUMMARY line; errors go to logs/errors-*.log
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _dsn(settings: ImportSettings) -> str:
    """Resolve the connection string.

    優先順位:
        1. DATABASE_URL / PGDSN (.env は main() 冒頭で上書き読み込み済み)
        2. config の database.dsn
        3. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE、不足分は config
    """
    db_cfg = settings.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _connect(settings: ImportSettings) -> Any:  # pragma: no cover (needs a server)
    """Open a connection; the importer issues BEGIN / COMMIT / ROLLBACK itself."""
    conn = psycopg2.connect(_dsn(settings))
    conn.autocommit = True  # 明示 BEGIN/COMMIT を importer 側で発行
    return conn


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; .env values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="python -m shipment_import.cli",
        description="Shipment spreadsheet -> PostgreSQL importer",
    )
    p.add_argument("paths", nargs="+", type=Path, help=".xlsx files or directories containing them")
    p.add_argument("--year", type=int, default=None, help="Year applied to every row")
    p.add_argument("--skip-duplicate", action="store_true", help="Skip files whose content was already imported")
    p.add_argument("--config", type=Path, default=None, help=f"YAML config (default {DEFAULT_CONFIG_PATH} if present)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging (header detection details)")
    p.add_argument("--inspect", action="store_true", help="Print header detection / column mapping as JSON then exit")
    p.add_argument("--export-normalized", type=Path, default=None, metavar="DIR",
                   help="Write normalized workbooks to DIR then exit")
    p.add_argument("--init-schema", action="store_true", help="Create the shipment tables if missing")
    return p.parse_args(argv)


def _load_settings(path: Path | None) -> ImportSettings:
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return ImportSettings()
        path = DEFAULT_CONFIG_PATH
    return load_config(path)


def collect_files(paths: list[Path]) -> list[Path]:
    """Expand directories (non-recursive, sorted) into their .xlsx files."""
    files: list[Path] = []
    for p in paths:
        if p.is_dir():
            files.extend(sorted(f for f in p.iterdir() if f.is_file() and f.suffix.lower() == ".xlsx"))
        elif p.is_file():
            files.append(p)
    return files


def _inspect(files: list[Path], year: int | None, settings: ImportSettings) -> int:
    logger = setup_logging()
    failed = 0
    for f in files:
        payload: dict[str, Any] = {"file": f.name}
        try:
            parsed = parse_shipment_workbook(f, year=year, settings=settings)
            payload["debugInfo"] = parsed.debug.to_dict()
            payload["rows"] = len(parsed.rows)
            payload["errors"] = len(parsed.errors)
            payload["sampleRows"] = [r.to_dict() for r in parsed.rows[:3]]
        except MissingColumnsError as e:
            failed += 1
            payload["error"] = str(e)
            payload["debugInfo"] = e.debug.to_dict() if e.debug is not None else None
        except (SheetHeaderError, WorkbookReadError) as e:
            failed += 1
            payload["error"] = str(e)
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    logger.info(f"inspected files={len(files)} failed={failed}")
    return EXIT_PARTIAL_FAILURE if failed else EXIT_SUCCESS_ALL


def _export(files: list[Path], out_dir: Path, year: int | None, settings: ImportSettings) -> int:
    logger = setup_logging()
    failed = 0
    for f in files:
        try:
            parsed = parse_shipment_workbook(f, year=year, settings=settings)
        except (MissingColumnsError, SheetHeaderError, WorkbookReadError) as e:
            failed += 1
            logger.error(f"export: {f.name}: {e}")
            continue
        target = write_normalized_workbook(parsed.rows, out_dir / f"{f.stem}_normalized.xlsx")
        logger.info(f"export: {f.name} -> {target} rows={len(parsed.rows)}")
    return EXIT_PARTIAL_FAILURE if failed else EXIT_SUCCESS_ALL


def run_imports(
    files: list[Path],
    *,
    year: int | None,
    skip_duplicate: bool,
    cursor: Any,
    settings: ImportSettings,
    error_log: ErrorLogBuffer,
) -> list[ImportResult]:
    logger = setup_logging()
    results: list[ImportResult] = []
    with ProgressTracker(len(files)) as progress:
        for f in files:
            progress.start_file(f)
            result = import_shipments(
                f, f.name,
                year=year,
                skip_duplicate=skip_duplicate,
                cursor=cursor,
                settings=settings,
                error_log=error_log,
            )
            results.append(result)
            line = render_file_line(result)
            if result.status == ImportStatus.FAILED:
                logger.error(line)
            else:
                logger.info(line)
            progress.finish_file(
                success=sum(1 for r in results if r.ok),
                failed=sum(1 for r in results if not r.ok),
            )
    return results


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 空リストはそのまま使う (None のときのみ sys.argv)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        settings = _load_settings(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    files = collect_files(args.paths)
    if not files:
        logger.error("no .xlsx files found in: " + ", ".join(str(p) for p in args.paths))
        return EXIT_FATAL

    if args.inspect:
        return _inspect(files, args.year, settings)
    if args.export_normalized is not None:
        return _export(files, args.export_normalized, args.year, settings)

    started = time.perf_counter()
    error_log = ErrorLogBuffer()
    db_mode = "mock"
    results: list[ImportResult]

    # DISABLE_DB_CONNECT=1 でテスト等から DB 接続を完全に無効化
    conn = None
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
    else:
        try:
            conn = _connect(settings)
        except psycopg2.OperationalError as e:
            logger.info(f"DB connection failed -> fallback to mock mode: {str(e).strip()}")

    if conn is None:
        if args.init_schema:
            logger.info("--init-schema ignored in mock mode")
        results = run_imports(
            files, year=args.year, skip_duplicate=args.skip_duplicate,
            cursor=None, settings=settings, error_log=error_log,
        )
    else:
        db_mode = "live"
        with closing(conn), conn.cursor() as cur:
            if args.init_schema:
                try:
                    ensure_schema(cur)
                except ShipmentStoreError as e:
                    logger.error(f"database: {e}")
                    return EXIT_FATAL
                logger.info("schema ready (shipments, shipment_imports)")
            results = run_imports(
                files, year=args.year, skip_duplicate=args.skip_duplicate,
                cursor=cur, settings=settings, error_log=error_log,
            )

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log: {log_path}")
    logger.info(f"mode={db_mode} files={len(results)}")

    summary_line = render_summary_line(results, time.perf_counter() - started)
    # log_summary が "SUMMARY " を付けるので接頭辞を外す
    log_summary(summary_line.removeprefix("SUMMARY "))

    if any(not r.ok for r in results):
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
