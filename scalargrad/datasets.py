"""
Datasets: (features, target) pairs with a declared width and class count.

Built-in toy sets for smoke tests and examples, plus a small CSV loader.
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

logger = logging.getLogger(__name__)

Sample = tuple[list[float], float]


@dataclass
class Dataset:
    """Ordered samples sharing one feature width."""

    samples: list[Sample]
    num_features: int
    num_classes: int
    name: str = ""
    class_names: list[str] = field(default_factory=list)

    def __post_init__(self):
        for i, (features, _target) in enumerate(self.samples):
            if len(features) != self.num_features:
                raise ValueError(
                    f"sample {i} has {len(features)} features, expected {self.num_features}"
                )

    def __len__(self):
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)

    def __getitem__(self, index):
        return self.samples[index]


def xor() -> Dataset:
    """The four-row XOR truth table."""
    return Dataset(
        samples=[
            ([0.0, 0.0], 0.0),
            ([0.0, 1.0], 1.0),
            ([1.0, 0.0], 1.0),
            ([1.0, 1.0], 0.0),
        ],
        num_features=2,
        num_classes=2,
        name="xor",
    )


def simple_multiclass() -> Dataset:
    """Three separable clusters in the unit square.

    Class 0 near (0, 0), class 1 near (1, 1), class 2 near (1, 0).
    """
    samples = [
        ([0.0, 0.0], 0.0), ([0.1, 0.1], 0.0), ([0.0, 0.2], 0.0), ([0.2, 0.0], 0.0), ([0.1, 0.0], 0.0),
        ([1.0, 1.0], 1.0), ([0.9, 0.9], 1.0), ([1.0, 0.8], 1.0), ([0.8, 1.0], 1.0), ([0.9, 1.0], 1.0),
        ([1.0, 0.0], 2.0), ([0.9, 0.1], 2.0), ([1.0, 0.2], 2.0), ([0.8, 0.0], 2.0), ([0.9, 0.0], 2.0),
    ]
    return Dataset(
        samples=samples,
        num_features=2,
        num_classes=3,
        name="simple_multiclass",
        class_names=["Class A", "Class B", "Class C"],
    )


def repeat(dataset: Dataset, n: int) -> Dataset:
    """The dataset's samples repeated n times, in order."""
    return Dataset(
        samples=[s for _ in range(n) for s in dataset.samples],
        num_features=dataset.num_features,
        num_classes=dataset.num_classes,
        name=dataset.name,
        class_names=list(dataset.class_names),
    )


def min_max_normalize(samples: list[Sample]) -> list[Sample]:
    """Rescale all features into [0, 1] using the global min and max."""
    values = [v for features, _ in samples for v in features]
    if not values:
        return list(samples)
    lo, hi = min(values), max(values)
    span = hi - lo
    if span == 0:
        return [([0.0] * len(features), target) for features, target in samples]
    return [([(v - lo) / span for v in features], target) for features, target in samples]


def _letter_code(value: str) -> float:
    """Category letter as its offset from 'a'; anything below 'a' (e.g. '?') is 0."""
    value = value.strip().lower()
    if not value:
        return 0.0
    return float(max(ord(value[0]) - ord("a"), 0))


def _parse_feature(value: str, categorical: bool) -> float:
    try:
        return float(value)
    except ValueError:
        if categorical:
            return _letter_code(value)
        raise


def load_csv(
    path: Union[str, Path],
    label_column: int = -1,
    class_names: Optional[Sequence[str]] = None,
    skip_columns: Sequence[int] = (),
    normalize: bool = True,
    has_header: bool = True,
    categorical: bool = False,
) -> Dataset:
    """
    Load a classification CSV.

    Labels are mapped to class indices in order of first appearance unless
    class_names fixes the order. Every non-label column not listed in
    skip_columns is parsed as a float feature.
    With categorical=True, non-numeric values (single-letter category codes
    such as the UCI mushroom set) are encoded as their letter offset from 'a'.
    """
    path = Path(path)
    names = list(class_names) if class_names else []
    samples: list[Sample] = []

    with path.open(newline="") as f:
        reader = csv.reader(f)
        if has_header:
            next(reader, None)
        for line_no, row in enumerate(reader, start=2 if has_header else 1):
            if not row:
                continue
            n_cols = len(row)
            label_idx = label_column % n_cols
            skipped = {c % n_cols for c in skip_columns}
            label = row[label_idx].strip()

            if label not in names:
                if class_names:
                    raise ValueError(f"{path}:{line_no}: unknown class {label!r}")
                names.append(label)

            try:
                features = [
                    _parse_feature(value, categorical) for i, value in enumerate(row)
                    if i != label_idx and i not in skipped
                ]
            except ValueError as e:
                raise ValueError(f"{path}:{line_no}: {e}") from e
            samples.append((features, float(names.index(label))))

    if not samples:
        raise ValueError(f"{path}: no samples")

    if normalize:
        samples = min_max_normalize(samples)

    logger.info(f"[Datasets] Loaded {len(samples)} samples, {len(names)} classes from {path}")
    return Dataset(
        samples=samples,
        num_features=len(samples[0][0]),
        num_classes=len(names),
        name=path.stem,
        class_names=names,
    )
