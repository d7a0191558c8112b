"""
Bivariate classification of joined regions.

Each of two fields is partitioned independently into ``k`` natural-breaks
classes (Fisher-Jenks: the partition of the sorted values that minimizes
the total within-class sum of squared deviations). A region's class is
the pair of 1-based bin indices.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from chargemap.errors import InsufficientDataError, UnknownAttributeError
from chargemap.models import BinBreaks, ClassifiedRegion, Defined, JoinedRegion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    """Classified regions plus the breaks used for each axis."""
    regions: Tuple[ClassifiedRegion, ...]
    x_breaks: BinBreaks
    y_breaks: BinBreaks
    excluded: Tuple[str, ...] = ()


def fisher_jenks_breaks(values: Sequence[float], k: int, field: str = "value") -> BinBreaks:
    """Compute natural-breaks class boundaries.

    The optimization runs over the distinct values weighted by their
    multiplicity, so equal values always share a class and the returned
    class starts are distinct data values. Ties between equally good
    partitions resolve to the earliest split.

    Args:
        values: Numeric values to partition
        k: Number of classes (>= 2)
        field: Field name, used in the result and errors

    Returns:
        BinBreaks whose boundaries are ``[min, start_2, ..., start_k, max]``

    Raises:
        ValueError: If k < 2
        InsufficientDataError: If there are fewer than k distinct values
    """
    if k < 2:
        raise ValueError(f"k must be at least 2, got {k}")

    distinct, counts = np.unique(np.asarray(values, dtype=float), return_counts=True)
    n = len(distinct)
    if n < k:
        raise InsufficientDataError(field, n, k)

    weights = counts.astype(float)
    cum_w = np.concatenate([[0.0], np.cumsum(weights)])
    cum_wx = np.concatenate([[0.0], np.cumsum(weights * distinct)])
    cum_wx2 = np.concatenate([[0.0], np.cumsum(weights * distinct * distinct)])

    def within_ssd(start, end):
        # Sum of squared deviations of distinct[start:end + 1]
        w = cum_w[end + 1] - cum_w[start]
        sx = cum_wx[end + 1] - cum_wx[start]
        sx2 = cum_wx2[end + 1] - cum_wx2[start]
        return sx2 - sx * sx / w

    cost = np.full((k, n), np.inf)
    class_start = np.zeros((k, n), dtype=int)
    cost[0] = within_ssd(0, np.arange(n))

    for c in range(1, k):
        for end in range(c, n):
            candidates = np.arange(c, end + 1)
            total = cost[c - 1, candidates - 1] + within_ssd(candidates, end)
            best = int(np.argmin(total))
            cost[c, end] = total[best]
            class_start[c, end] = candidates[best]

    starts: List[int] = []
    end = n - 1
    for c in range(k - 1, 0, -1):
        start = int(class_start[c, end])
        starts.append(start)
        end = start - 1
    starts.reverse()

    boundaries = [float(distinct[0])]
    boundaries.extend(float(distinct[s]) for s in starts)
    boundaries.append(float(distinct[-1]))
    return BinBreaks(field=field, boundaries=tuple(boundaries))


class Classifier:
    """Assigns joined regions a joint (x-bin, y-bin) class.

    Regions with an undefined value in either field cannot be classified
    and are excluded from the output. Breaks are computed across all
    remaining regions.
    """

    def classify(
        self,
        regions: Iterable[JoinedRegion],
        x_field: str,
        y_field: str,
        k: int
    ) -> Tuple[ClassifiedRegion, ...]:
        """Classify regions on two fields into k x k classes."""
        return self.classify_with_breaks(regions, x_field, y_field, k).regions

    def classify_with_breaks(
        self,
        regions: Iterable[JoinedRegion],
        x_field: str,
        y_field: str,
        k: int
    ) -> ClassificationResult:
        """Classify regions and return the breaks used.

        Raises:
            ValueError: If k < 2
            UnknownAttributeError: If no region carries one of the fields
            InsufficientDataError: If a field has fewer than k distinct
                defined values among classifiable regions
        """
        if k < 2:
            raise ValueError(f"k must be at least 2, got {k}")

        regions = tuple(regions)
        for name in (x_field, y_field):
            if regions and not any(r.has_field(name) for r in regions):
                known = {n for r in regions for n in r.region.attribute_names}
                raise UnknownAttributeError(name, list(known | {"count"}))

        usable = []
        excluded = []
        for region in regions:
            x, y = region.value(x_field), region.value(y_field)
            if isinstance(x, Defined) and isinstance(y, Defined):
                usable.append((region, x.value, y.value))
            else:
                excluded.append(region.region_id)

        if excluded:
            logger.info(
                "Excluded %d regions with undefined %s or %s", len(excluded), x_field, y_field
            )

        x_breaks = fisher_jenks_breaks([x for _, x, _ in usable], k, field=x_field)
        y_breaks = fisher_jenks_breaks([y for _, _, y in usable], k, field=y_field)

        classified = tuple(
            ClassifiedRegion(
                joined=region,
                x_bin=x_breaks.bin_for(x),
                y_bin=y_breaks.bin_for(y),
            )
            for region, x, y in usable
        )

        logger.info(
            "Classified %d regions: %s breaks %s, %s breaks %s",
            len(classified), x_field, x_breaks.boundaries, y_field, y_breaks.boundaries
        )
        return ClassificationResult(
            regions=classified,
            x_breaks=x_breaks,
            y_breaks=y_breaks,
            excluded=tuple(excluded),
        )
