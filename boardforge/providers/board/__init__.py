"""
Board Provider System

Known development boards are described by resource files and collected
in a registry; projects reference boards from that catalog.
"""

from .board_definitions import Board
from .board_registry import BoardRegistry, get_board_registry

__all__ = ['Board', 'BoardRegistry', 'get_board_registry']
