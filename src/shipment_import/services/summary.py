from __future__ import annotations

from collections.abc import Sequence

from ..models.import_result import ImportResult, ImportStatus

"""SUMMARY / per-file line rendering for the shipment import CLI.

Format:
SUMMARY files={n} success={s} failed={f} inserted={i} updated={u}
skipped={k} errors={e} elapsed_sec={t}

Duplicate files count as success (nothing to do is not a failure).
"""

__all__ = [
    "format_elapsed",
    "render_file_line",
    "render_summary_line",
]


def format_elapsed(seconds: float) -> str:
    # 整数秒は小数点なし、極小値は指数表記を避ける
    if seconds <= 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(results: Sequence[ImportResult], elapsed: float) -> str:
    """Render the SUMMARY line for a whole run.

    Examples:
        >>> render_summary_line([ImportResult("a.xlsx", "success", inserted=3)], 2.0)
        'SUMMARY files=1 success=1 failed=0 inserted=3 updated=0 skipped=0 errors=0 elapsed_sec=2'
    """
    failed = sum(1 for r in results if r.status == ImportStatus.FAILED)
    return (
        f"SUMMARY files={len(results)} "
        f"success={len(results) - failed} "
        f"failed={failed} "
        f"inserted={sum(r.inserted for r in results)} "
        f"updated={sum(r.updated for r in results)} "
        f"skipped={sum(r.skipped for r in results)} "
        f"errors={sum(r.error_count for r in results)} "
        f"elapsed_sec={format_elapsed(elapsed)}"
    )


def render_file_line(result: ImportResult) -> str:
    parts = [f"file={result.file_name}", f"status={result.status}"]
    if result.status == ImportStatus.DUPLICATE:
        parts.append(f"message={result.message!r}")
        return " ".join(parts)
    if result.header_row is not None:
        parts.append(f"header_row={result.header_row}")
    parts.append(f"score={result.header_score}/{result.required_count}")
    if result.year is not None:
        parts.append(f"year={result.year}")
    parts += [
        f"inserted={result.inserted}",
        f"updated={result.updated}",
        f"skipped={result.skipped}",
        f"errors={result.error_count}",
    ]
    if result.error:
        parts.append(f"error={result.error!r}")
    return " ".join(parts)
