"""
Board Registry: catalog of known boards, loaded once from resource files
"""

import os
import logging
from pathlib import Path
from typing import Iterator, List, Optional

import yaml

from .board_definitions import Board

logger = logging.getLogger(__name__)

# Bundled board resources shipped with the package
DEFAULT_BOARDS_DIR = Path(__file__).resolve().parents[2] / "resources" / "boards"


class BoardRegistry:
    """
    Immutable registry of known boards.

    - Discovers board resource files under a directory tree
    - Resolves partially specified project boards to their canonical entry
    """

    BOARD_FILE_SUFFIXES = (".yaml", ".yml")

    # Directories picked up next to a board file when it does not name them
    BSP_DIR_NAME = "bsp"
    TEMPLATE_DIR_NAME = "template"
    SNIPPETS_DIR_NAME = "snippets"

    def __init__(self, boards_dir: Optional[os.PathLike] = None):
        self._boards_dir = Path(boards_dir) if boards_dir else DEFAULT_BOARDS_DIR
        self._boards: List[Board] = []

        logger.info(f"Initializing BoardRegistry from {self._boards_dir}")
        self._discover_boards()

    @property
    def boards_dir(self) -> Path:
        return self._boards_dir

    def _discover_boards(self):
        """
        Walk the boards directory and load every board resource file
        """
        if not self._boards_dir.is_dir():
            logger.warning(f"Boards directory not found: {self._boards_dir}")
            return

        for root, dirs, files in os.walk(self._boards_dir):
            # bsp/template/snippets trees hold board sources, not descriptors
            dirs[:] = sorted(
                d for d in dirs if d not in (self.BSP_DIR_NAME, self.TEMPLATE_DIR_NAME, self.SNIPPETS_DIR_NAME)
            )
            for file in sorted(files):
                if not file.endswith(self.BOARD_FILE_SUFFIXES):
                    continue

                path = Path(root) / file
                try:
                    board = self._load_board_file(path)
                except (OSError, yaml.YAMLError, ValueError) as e:
                    logger.error(f"Failed to load board file {path}: {e}")
                    continue

                if board in self._boards:
                    logger.warning(f"Duplicate board identifier {board.identifier!r} in {path}, skipping")
                    continue

                self._boards.append(board)
                logger.debug(f"Registered board: {board} ({board.identifier})")

        logger.info(f"Loaded {len(self._boards)} boards")

    def _load_board_file(self, path: Path) -> Board:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError("board file must contain a mapping")

        board_dir = path.parent
        data = dict(data)
        for key, dir_name in (
            ("bsp_dir", self.BSP_DIR_NAME),
            ("template_dir", self.TEMPLATE_DIR_NAME),
            ("snippets_dir", self.SNIPPETS_DIR_NAME),
        ):
            if not data.get(key) and (board_dir / dir_name).is_dir():
                data[key] = dir_name

        return Board.from_dict(data, base_dir=board_dir)

    def list_boards(self) -> List[Board]:
        """List all known boards, in discovery order"""
        return self._boards.copy()

    def main_boards(self) -> List[Board]:
        return [b for b in self._boards if b.is_main_board]

    def peripheral_boards(self) -> List[Board]:
        return [b for b in self._boards if not b.is_main_board]

    def get_board(self, identifier: str) -> Optional[Board]:
        """Get a board by its identifier"""
        for board in self._boards:
            if board.identifier == identifier:
                return board
        return None

    def find(self, board: Board) -> Optional[Board]:
        """Return the registry entry equal to ``board``, or None"""
        for known in self._boards:
            if known == board:
                return known
        return None

    def __iter__(self) -> Iterator[Board]:
        return iter(self._boards.copy())

    def __len__(self) -> int:
        return len(self._boards)


_board_registry: Optional[BoardRegistry] = None


def get_board_registry(boards_dir: Optional[os.PathLike] = None) -> BoardRegistry:
    """
    Get the process-wide board registry.

    The registry is loaded on first use; ``boards_dir`` only matters then.
    """
    global _board_registry
    if _board_registry is None:
        _board_registry = BoardRegistry(boards_dir)
    return _board_registry


def reset_board_registry():
    """Drop the process-wide registry so the next call reloads it"""
    global _board_registry
    _board_registry = None
