"""
Board definitions: the immutable hardware descriptor shared by the registry and projects
"""

import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


def make_identifier(manufacturer: str, name: str) -> str:
    """Build the stable identifier used when a descriptor does not declare one.

    e.g. ("Adafruit", "Feather RP2040") -> "adafruit/feather-rp2040"
    """

    def slug(text: str) -> str:
        return re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")

    parts = [slug(manufacturer), slug(name)]
    return "/".join(p for p in parts if p)


def _optional_path(value: Any, base_dir: Optional[Path]) -> Optional[Path]:
    if value is None or value == "":
        return None
    if not isinstance(value, (str, Path)):
        raise ValueError(f"expected a path, got {type(value).__name__}")
    path = Path(value).expanduser()
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    return path


@dataclass(frozen=True, eq=False)
class Board:
    """
    A development board descriptor.

    Boards are value types: two boards are "the same board" when their
    identifiers match, whatever the remaining descriptor fields say.
    Use ``same_descriptor`` to compare every field.
    """

    name: str
    manufacturer: str = ""
    identifier: str = ""
    is_main_board: bool = False
    bsp_dir: Optional[Path] = None
    template_dir: Optional[Path] = None
    snippets_dir: Optional[Path] = None
    required_crates: Optional[Tuple[str, ...]] = None
    description: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("board name is required")
        if not self.identifier:
            object.__setattr__(self, "identifier", make_identifier(self.manufacturer, self.name))
        if self.required_crates is not None:
            object.__setattr__(self, "required_crates", tuple(self.required_crates))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self.identifier == other.identifier

    def __hash__(self) -> int:
        return hash(self.identifier)

    def __str__(self) -> str:
        return f"{self.manufacturer} {self.name}".strip()

    def same_descriptor(self, other: "Board") -> bool:
        """Field-by-field comparison, stricter than ``==``"""
        return all(getattr(self, f.name) == getattr(other, f.name) for f in fields(self))

    def get_template_dir(self) -> Optional[Path]:
        return self.template_dir

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain types for the project manifest"""
        return {
            "name": self.name,
            "manufacturer": self.manufacturer,
            "identifier": self.identifier,
            "is_main_board": self.is_main_board,
            "bsp_dir": str(self.bsp_dir) if self.bsp_dir else None,
            "template_dir": str(self.template_dir) if self.template_dir else None,
            "snippets_dir": str(self.snippets_dir) if self.snippets_dir else None,
            "required_crates": list(self.required_crates) if self.required_crates is not None else None,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "Board":
        """
        Build a Board from a manifest or resource-file mapping.

        Relative paths are resolved against ``base_dir`` when given.
        Raises ValueError on malformed input.
        """
        if not isinstance(data, dict):
            raise ValueError(f"board entry must be a mapping, got {type(data).__name__}")

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("board entry has no name")

        is_main_board = data.get("is_main_board", False)
        if is_main_board is None:
            is_main_board = False
        if not isinstance(is_main_board, bool):
            raise ValueError(f"is_main_board of board {name!r} must be true or false, got {is_main_board!r}")

        crates = data.get("required_crates")
        if crates is not None:
            if not isinstance(crates, (list, tuple)) or not all(isinstance(c, str) for c in crates):
                raise ValueError(f"required_crates of board {name!r} must be a list of names")
            crates = tuple(crates)

        return cls(
            name=name.strip(),
            manufacturer=str(data.get("manufacturer") or ""),
            identifier=str(data.get("identifier") or ""),
            is_main_board=is_main_board,
            bsp_dir=_optional_path(data.get("bsp_dir"), base_dir),
            template_dir=_optional_path(data.get("template_dir"), base_dir),
            snippets_dir=_optional_path(data.get("snippets_dir"), base_dir),
            required_crates=crates,
            description=str(data.get("description") or ""),
        )
