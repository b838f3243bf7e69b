"""Merging of per-pass page outcomes into the cumulative report."""

from __future__ import annotations

import logging
from typing import Iterable

from .types import ConversionReport, PageOutcome

_LOGGER = logging.getLogger("pdfrasterx.aggregate")


def merge_outcomes(report: ConversionReport, outcomes: Iterable[PageOutcome]) -> ConversionReport:
    """Fold *outcomes* from one pass into *report* and return it.

    A successful outcome moves its page into ``file_records``; a failed one
    records the latest error. Pages that already succeeded are never
    overwritten. An out-of-range page index raises :class:`ValueError` and
    leaves *report* untouched.
    """

    outcomes = list(outcomes)
    for outcome in outcomes:
        if not 0 <= outcome.page_index < report.total_pages:
            raise ValueError(
                f"Page index {outcome.page_index} outside document of {report.total_pages} pages"
            )

    recovered = 0
    for outcome in outcomes:
        index = outcome.page_index
        if index in report.file_records:
            _LOGGER.debug("Ignoring outcome for page %d, already recorded as successful", index + 1)
            continue
        if outcome.success:
            assert outcome.output is not None
            report.file_records[index] = outcome.output
            report.page_errors.pop(index, None)
            recovered += 1
        else:
            report.page_errors[index] = outcome.error

    _LOGGER.debug(
        "Merged pass: %d page(s) recovered, %d still failing",
        recovered,
        report.failed_pages,
    )
    return report


__all__ = ["merge_outcomes"]
