#!/usr/bin/env python3
"""Record eligibility: multi-mapping and cell barcode filters."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, NamedTuple

from kai.core.constants import Barcode, CountMode, EmptyAllowlistPolicy

if TYPE_CHECKING:
    from kai.models.models import AlignmentRecord, FilterConfig


class Decision(NamedTuple):
    proceed: bool
    barcode: Barcode | None = None


REJECT = Decision(False)


@dataclass
class SkipStats:
    """Tally of records excluded from counting, by reason."""

    multi_mapped: int = 0
    missing_barcode: int = 0
    barcode_filtered: int = 0
    no_overlap: int = 0

    def merge(self, other: SkipStats) -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))

    def as_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class FilterPolicy:
    """Decide whether an alignment may be counted.

    In single mode every barcode that passes the allowlist is handed to
    ``register_barcode`` as soon as it is seen, whether or not the read goes on to
    overlap the region being counted.

    Args:
        config: Filter settings.
        mode: ``"bulk"`` or ``"single"``.
        register_barcode: Called with each barcode observed in single mode.
        stats: Optional tally updated for every rejected record.
    """

    def __init__(
        self,
        config: FilterConfig,
        mode: CountMode,
        register_barcode: Callable[[Barcode], None] | None = None,
        stats: SkipStats | None = None,
    ) -> None:
        self.config = config
        self.mode = mode
        self.register_barcode = register_barcode or (lambda barcode: None)
        self.stats = stats if stats is not None else SkipStats()

    def barcode_allowed(self, barcode: Barcode) -> bool:
        """Check a barcode against the allowlist.

        No allowlist file means no filtering. A supplied but empty allowlist keeps every
        barcode under the ``keep_all`` policy and rejects every barcode under ``drop_all``.
        """
        config = self.config
        if not config.allowlist_supplied:
            return True
        if not config.barcode_allowlist:
            return config.empty_allowlist == EmptyAllowlistPolicy.KEEP_ALL
        return barcode in config.barcode_allowlist

    def accept(self, record: AlignmentRecord) -> Decision:
        """Return whether the record proceeds to the overlap test, and its barcode."""
        if record.locus_count is not None and record.locus_count > self.config.max_loci:
            self.stats.multi_mapped += 1
            return REJECT

        if self.mode == "bulk":
            return Decision(True)

        barcode = record.cell_barcode
        if barcode is None:
            self.stats.missing_barcode += 1
            return REJECT

        if not self.barcode_allowed(barcode):
            if self.config.register_rejected_barcodes:
                self.register_barcode(barcode)
            self.stats.barcode_filtered += 1
            return REJECT

        self.register_barcode(barcode)
        return Decision(True, barcode)
