#!/usr/bin/env python3
"""Accumulation of read counts per region (bulk) or per region and cell (single)."""

from __future__ import annotations

from collections import Counter

from kai.core.constants import Barcode, BulkCounts, CellCounts, CountMode, RegionKey, RegionOrder
from kai.core.regions import sort_region_keys


class RegionCounter:
    """Count table for one run.

    Bulk mode keeps one total per region key. Single mode keeps a count per region key
    and cell barcode, plus the set of every barcode observed. Only keys that received at
    least one hit are present.
    """

    def __init__(self, mode: CountMode) -> None:
        if mode not in ("bulk", "single"):
            raise ValueError(f"Unknown mode: {mode}")
        self.mode = mode
        self.totals: Counter[RegionKey] = Counter()
        self.cell_counts: dict[RegionKey, Counter[Barcode]] = {}
        self.observed_barcodes: set[Barcode] = set()

    def register_barcode(self, barcode: Barcode) -> None:
        self.observed_barcodes.add(barcode)

    def record_hit(self, region_key: RegionKey, barcode: Barcode | None = None) -> None:
        """Count one read overlapping a region."""
        if self.mode == "bulk":
            self.totals[region_key] += 1
            return
        if barcode is None:
            raise ValueError(f"A cell barcode is required to count {region_key} in single mode")
        if region_key not in self.cell_counts:
            self.cell_counts[region_key] = Counter()
        self.cell_counts[region_key][barcode] += 1

    def merge(self, other: RegionCounter) -> None:
        """Add the counts and barcodes of another counter of the same mode."""
        if other.mode != self.mode:
            raise ValueError(f"Cannot merge a {other.mode} counter into a {self.mode} counter")
        self.totals.update(other.totals)
        for region_key, barcodes in other.cell_counts.items():
            if region_key not in self.cell_counts:
                self.cell_counts[region_key] = Counter()
            self.cell_counts[region_key].update(barcodes)
        self.observed_barcodes.update(other.observed_barcodes)

    def feature_keys(self, order: RegionOrder = RegionOrder.LEXICOGRAPHIC) -> list[RegionKey]:
        """Region keys with at least one count, in output order."""
        keys = self.totals if self.mode == "bulk" else self.cell_counts
        return sort_region_keys(keys, order)

    def barcode_list(self) -> list[Barcode]:
        return sorted(self.observed_barcodes)

    @property
    def nonzero_entries(self) -> int:
        """Number of (feature, barcode) pairs with a count in single mode."""
        return sum(len(barcodes) for barcodes in self.cell_counts.values())

    @property
    def total_hits(self) -> int:
        if self.mode == "bulk":
            return sum(self.totals.values())
        return sum(sum(barcodes.values()) for barcodes in self.cell_counts.values())

    def bulk_counts(self) -> BulkCounts:
        return dict(self.totals)

    def single_counts(self) -> CellCounts:
        return {region_key: dict(barcodes) for region_key, barcodes in self.cell_counts.items()}
