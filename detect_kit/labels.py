from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from .errors import ModelLoadFailure


PathLike = Union[str, Path]


class LabelTable:
    """
    Immutable, index-addressed class names. Index `i` is valid iff
    `0 <= i < len(table)`.
    """

    __slots__ = ("_names",)

    def __init__(self, names: Iterable[str]):
        self._names: Tuple[str, ...] = tuple(str(n) for n in names)

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __getitem__(self, index: int) -> str:
        return self._names[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LabelTable):
            return self._names == other._names
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._names)

    def __repr__(self) -> str:
        return f"LabelTable({list(self._names)!r})"

    def is_valid(self, index: int) -> bool:
        return 0 <= index < len(self._names)

    def name(self, index: int) -> str:
        if not self.is_valid(index):
            raise IndexError(f"class index {index} out of range [0, {len(self._names)})")
        return self._names[index]

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names


def parse_label_lines(lines: Iterable[str]) -> LabelTable:
    """
    One label per line; line order defines the class index. Trailing blank
    lines are dropped, blank lines in the middle are kept as (empty) labels
    so later indices do not shift.
    """

    names: List[str] = [line.rstrip("\r\n").strip() for line in lines]
    while names and not names[-1]:
        names.pop()
    return LabelTable(names)


def parse_names_mapping(lines: Iterable[str]) -> LabelTable:
    """
    Parse the lightweight YOLO metadata format:

        names:
          0: person
          1: bicycle
          ...

    Ids must be contiguous from 0.
    """

    names: Dict[int, str] = {}
    in_names = False

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue

        # "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            # Next top-level key ends the mapping.
            if not raw[:1].isspace():
                break
            continue
        names[int(left)] = right

    expected = list(range(len(names)))
    if sorted(names) != expected:
        raise ValueError(f"class ids must be contiguous from 0, got {sorted(names)}")
    return LabelTable(names[i] for i in expected)


def load_labels(path: PathLike) -> LabelTable:
    """
    Load a label table from disk. `.yaml`/`.yml` files use the `names:`
    mapping format, everything else is one label per line.
    """

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ModelLoadFailure(f"Cannot read label file: {p}") from exc

    lines = text.splitlines()
    try:
        if p.suffix.lower() in {".yaml", ".yml"}:
            table = parse_names_mapping(lines)
        else:
            table = parse_label_lines(lines)
    except ValueError as exc:
        raise ModelLoadFailure(f"Invalid label file {p}: {exc}") from exc

    if len(table) == 0:
        raise ModelLoadFailure(f"Label file is empty: {p}")
    return table
