"""
System Model
Hardware topology of a project: one main board slot plus peripheral boards
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from boardforge.providers.board.board_definitions import Board

logger = logging.getLogger(__name__)


@dataclass
class System:
    """
    A main, programmable board plus an ordered list of peripheral boards.

    Invariants:
    - at most one main board, and only boards flagged main go there
    - peripherals are never flagged main and never repeat
    """

    main_board: Optional[Board] = None
    boards: List[Board] = field(default_factory=list)

    def has_main(self) -> bool:
        return self.main_board is not None

    def set_main(self, board: Board) -> bool:
        """Occupy the main slot. Returns False (no mutation) when rejected."""
        if not board.is_main_board:
            logger.info(f"board <{board}> is not a main board, refusing to use it as one")
            return False
        if self.main_board is not None:
            logger.info(f"system already contains a main board <{self.main_board}>! aborting.")
            return False
        self.main_board = board
        return True

    def add_peripheral(self, board: Board) -> bool:
        """Append a peripheral board. Returns False (no mutation) when rejected."""
        if board.is_main_board:
            logger.info(f"board <{board}> is a main board and can't be added as a peripheral")
            return False
        if board in self.boards:
            logger.info(f"system already contains board <{board}>")
            return False
        self.boards.append(board)
        return True

    def remove_board(self, board: Board) -> bool:
        if self.main_board is not None and self.main_board == board:
            self.main_board = None
            return True
        if board in self.boards:
            self.boards.remove(board)
            return True
        return False

    def all_boards(self) -> List[Board]:
        """Main board first (if any), then peripherals in insertion order"""
        boards = [self.main_board] if self.main_board is not None else []
        return boards + list(self.boards)

    def resolve_against(self, known_boards: Iterable[Board]):
        """
        Replace each peripheral with its canonical registry entry.

        Boards the registry doesn't know are kept as-is. The main board
        is left untouched.
        """
        known_boards = list(known_boards)
        for i, board in enumerate(self.boards):
            known = next((k for k in known_boards if k == board), None)
            if known is None:
                logger.warning(
                    f"Could not find board <{board}> in the known boards list. "
                    "Was the project manifest generated with an older version of BoardForge?"
                )
                continue
            if not known.same_descriptor(board):
                logger.debug(f"refreshing descriptor of <{board}> from the registry")
            self.boards[i] = known

    def to_dict(self) -> Dict[str, Any]:
        return {
            "main_board": self.main_board.to_dict() if self.main_board else None,
            "boards": [b.to_dict() for b in self.boards],
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "System":
        """
        Rebuild a System from manifest data, re-applying the invariants.

        Raises ValueError when the data is not shaped like a system.
        """
        system = cls()
        if not data:
            return system
        if not isinstance(data, dict):
            raise ValueError("system entry must be a mapping")

        main = data.get("main_board")
        if main:
            board = Board.from_dict(main)
            if not system.set_main(board):
                logger.warning(f"ignoring main board entry <{board}> from manifest")

        peripherals = data.get("boards") or []
        if not isinstance(peripherals, list):
            raise ValueError("system boards must be a list")
        for entry in peripherals:
            board = Board.from_dict(entry)
            if not system.add_peripheral(board):
                logger.warning(f"ignoring peripheral entry <{board}> from manifest")

        return system
