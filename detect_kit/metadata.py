from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from .catalog import COCO_CATEGORIES, ClassCatalog


def load_class_names(metadata_path: str) -> Dict[int, str]:
    """
    Load class names from a lightweight `metadata.yaml`:

        names:
          0: person
          1: bicycle
          ...

    Parsed by hand so the core does not need PyYAML.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                if not raw[:1].isspace():
                    # next top-level key ends the names block
                    break
                continue
            names[int(left)] = right

    return names


def load_catalog(
    metadata_path: str,
    categories: Optional[Mapping[str, Iterable[str]]] = None,
) -> ClassCatalog:
    """
    Build a `ClassCatalog` from metadata. Ids must run 0..N-1 without gaps.

    `categories` defaults to the COCO groups restricted to labels that exist in
    the file.
    """

    names = load_class_names(metadata_path)
    if not names:
        raise ValueError(f"No class names found in {metadata_path}")
    ids = sorted(names)
    if ids != list(range(len(ids))):
        raise ValueError(f"Class ids in {metadata_path} must be contiguous from 0 (got {ids[:5]}...)")
    labels = [names[i] for i in ids]

    if categories is None:
        present = set(labels)
        categories = {name: [m for m in members if m in present] for name, members in COCO_CATEGORIES.items()}
    return ClassCatalog.from_labels(labels, categories)
