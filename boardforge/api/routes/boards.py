"""
Board Catalog API Routes
Read-only listing of the boards known to the registry
"""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from boardforge.providers.board.board_registry import BoardRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/boards", tags=["boards"])

# Registry instance (injected from main.py)
_registry: Optional[BoardRegistry] = None


def set_board_registry(registry: BoardRegistry):
    """Inject board registry instance."""
    global _registry
    _registry = registry


def _not_initialized() -> JSONResponse:
    logger.error("Board registry not initialized")
    return JSONResponse(status_code=500, content={"success": False, "error": "Board registry not initialized"})


@router.get("")
async def list_boards(role: Optional[str] = None) -> JSONResponse:
    """List known boards, optionally filtered by role ('main' or 'peripheral')."""
    if _registry is None:
        return _not_initialized()

    if role == "main":
        boards = _registry.main_boards()
    elif role == "peripheral":
        boards = _registry.peripheral_boards()
    elif role is None:
        boards = _registry.list_boards()
    else:
        return JSONResponse(status_code=400, content={"success": False, "error": f"Unknown role: {role}"})

    return JSONResponse(content=[b.to_dict() for b in boards])


@router.get("/{identifier:path}")
async def get_board(identifier: str) -> JSONResponse:
    """Get a single board by identifier (e.g. 'adafruit/feather-rp2040')."""
    if _registry is None:
        return _not_initialized()

    board = _registry.get_board(identifier)
    if board is None:
        return JSONResponse(status_code=404, content={"success": False, "error": f"Unknown board: {identifier}"})
    return JSONResponse(content=board.to_dict())
