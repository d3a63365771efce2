"""Invoice field extraction orchestration.

The extraction service itself (AI model, PDF text extraction) is external and
reached through :class:`ExtractionService`. This module runs the per-field
calls concurrently and converts each outcome into an
:class:`~faktoora.models.AnalysisResult`, so a failure in one field is recorded
on that field only and never affects the others.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from typing import Literal, Protocol

from .logging_setup import get_logger
from .models import AnalysisResult, InvoiceAnalysis

_logger = get_logger("faktoora.extraction")

type Field = Literal["date", "sender", "parsed_text", "amount"]

ALL_FIELDS: tuple[Field, ...] = ("date", "sender", "parsed_text", "amount")


class ExtractionService(Protocol):
    async def extract(self, storage_ref: str, field: Field) -> str | None:
        """Return the extracted value for ``field`` (``None`` when absent)."""
        ...


async def _extract_field(
    service: ExtractionService,
    storage_ref: str,
    field: Field,
    clock: Callable[[], float],
) -> AnalysisResult:
    try:
        value = await service.extract(storage_ref, field)
    except Exception as e:  # noqa: BLE001 - each field records its own failure
        _logger.warning("extraction of %s failed for %s: %s", field, storage_ref, e)
        return AnalysisResult(value=None, error=str(e) or type(e).__name__, last_updated=clock())
    return AnalysisResult(value=value, error=None, last_updated=clock())


async def analyze_invoice(
    service: ExtractionService,
    storage_ref: str,
    fields: Iterable[Field] = ALL_FIELDS,
    *,
    clock: Callable[[], float] = time.time,
) -> InvoiceAnalysis:
    """Extract ``fields`` concurrently and collect the per-field results.

    Fields not requested keep their empty default result.
    """

    wanted = list(dict.fromkeys(fields))
    results = await asyncio.gather(
        *(_extract_field(service, storage_ref, f, clock) for f in wanted)
    )
    analysis = InvoiceAnalysis(**dict(zip(wanted, results, strict=True)))
    failed = [f for f, r in zip(wanted, results, strict=True) if r.error is not None]
    if failed and len(failed) == len(wanted):
        analysis = analysis.model_copy(update={"analysis_big_error": "All extraction calls failed"})
    return analysis


__all__ = ["ALL_FIELDS", "ExtractionService", "Field", "analyze_invoice"]
