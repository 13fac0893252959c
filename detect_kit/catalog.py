"""
Class catalog shared by decoding, tracking and rendering.

Index-to-name mapping and category groups are immutable process-wide
configuration; every component should reference the same `ClassCatalog`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Tuple

COCO_CLASS_LABELS: Tuple[str, ...] = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat",
    "traffic light", "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat",
    "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe", "backpack",
    "umbrella", "handbag", "tie", "suitcase", "frisbee", "skis", "snowboard", "sports ball",
    "kite", "baseball bat", "baseball glove", "skateboard", "surfboard", "tennis racket",
    "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair",
    "couch", "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse",
    "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink", "refrigerator",
    "book", "clock", "vase", "scissors", "teddy bear", "hair drier", "toothbrush",
)

PEOPLE = "people"
VEHICLES = "vehicles"
ANIMALS = "animals"
FOOD = "food"

# Order matters: the first group containing a label wins.
COCO_CATEGORIES: Mapping[str, FrozenSet[str]] = MappingProxyType(
    {
        PEOPLE: frozenset({"person"}),
        VEHICLES: frozenset({"bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat"}),
        ANIMALS: frozenset(
            {"bird", "cat", "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe"}
        ),
        FOOD: frozenset(
            {"banana", "apple", "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake"}
        ),
    }
)


@dataclass(frozen=True)
class ClassCatalog:
    labels: Tuple[str, ...]
    categories: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        labels = tuple(str(label) for label in self.labels)
        if not labels:
            raise ValueError("catalog must contain at least one label")
        if len(set(labels)) != len(labels):
            raise ValueError("catalog labels must be unique")

        frozen: Dict[str, FrozenSet[str]] = {}
        known = set(labels)
        for name, members in self.categories.items():
            members = frozenset(members)
            unknown = sorted(members - known)
            if unknown:
                raise ValueError(f"category {name!r} references unknown labels: {unknown}")
            frozen[str(name)] = members

        object.__setattr__(self, "labels", labels)
        object.__setattr__(self, "categories", MappingProxyType(frozen))
        object.__setattr__(self, "_index", MappingProxyType({label: i for i, label in enumerate(labels)}))

    @classmethod
    def coco(cls) -> "ClassCatalog":
        return cls(labels=COCO_CLASS_LABELS, categories=COCO_CATEGORIES)

    @classmethod
    def from_labels(
        cls,
        labels: Sequence[str],
        categories: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> "ClassCatalog":
        cats = {name: frozenset(members) for name, members in (categories or {}).items()}
        return cls(labels=tuple(labels), categories=cats)

    def __len__(self) -> int:
        return len(self.labels)

    def __contains__(self, label: object) -> bool:
        return label in self._index  # type: ignore[attr-defined]

    def label_for(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.labels):
            return self.labels[index]
        return None

    def index_of(self, label: str) -> int:
        try:
            return self._index[label]  # type: ignore[attr-defined]
        except KeyError:
            raise KeyError(f"unknown class label: {label!r}") from None

    def category_of(self, label: str) -> Optional[str]:
        for name, members in self.categories.items():
            if label in members:
                return name
        return None

    def labels_in(self, category: str) -> FrozenSet[str]:
        if category not in self.categories:
            raise KeyError(f"unknown category: {category!r}")
        return self.categories[category]
