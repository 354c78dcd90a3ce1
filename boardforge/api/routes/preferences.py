"""
Preferences API Routes
Read and update the host configuration (build tool, board catalog, logging)
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from boardforge.api.routes.project import get_current_project
from boardforge.services.preferences import PreferencesService
from boardforge.utils.logger import get_logger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/preferences", tags=["preferences"])

# Preferences service (injected from main.py)
_preferences: Optional[PreferencesService] = None


def set_preferences_service(service: Optional[PreferencesService]):
    """Inject preferences service instance."""
    global _preferences
    _preferences = service


class BuildPreferences(BaseModel):
    tool: Optional[str] = Field(None, min_length=1, max_length=255)
    stop_on_failure: Optional[bool] = None

    @field_validator("tool")
    @classmethod
    def validate_tool(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("build tool cannot be blank")
        return v


class BoardsPreferences(BaseModel):
    # empty string selects the bundled board catalog
    directory: str = Field(..., max_length=4096)


class LoggingPreferences(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class PreferencesUpdateRequest(BaseModel):
    """Partial update; omitted sections are left unchanged"""

    build: Optional[BuildPreferences] = None
    boards: Optional[BoardsPreferences] = None
    logging: Optional[LoggingPreferences] = None


def _not_initialized() -> JSONResponse:
    logger.error("Preferences service not initialized")
    return JSONResponse(status_code=500, content={"success": False, "error": "Preferences service not initialized"})


def _save_failed() -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "error": "Failed to save preferences"})


@router.get("")
async def get_all_preferences() -> JSONResponse:
    """Get all preferences"""
    if _preferences is None:
        return _not_initialized()
    return JSONResponse(content=_preferences.get_all_preferences())


@router.put("")
async def update_preferences(request: PreferencesUpdateRequest) -> JSONResponse:
    """
    Update preferences (partial update).

    Build settings also apply to the open project from its next run; a new
    board directory is used the next time the catalog is loaded.
    """
    if _preferences is None:
        return _not_initialized()

    saved = True
    if request.build is not None:
        saved &= _preferences.set_build_config(tool=request.build.tool, stop_on_failure=request.build.stop_on_failure)
        project = get_current_project()
        if project is not None:
            build = _preferences.get_build_config()
            project.apply_build_settings(build["tool"], build["stop_on_failure"])

    if request.boards is not None:
        saved &= _preferences.set_boards_directory(request.boards.directory.strip())

    if request.logging is not None:
        saved &= _preferences.set_log_level(request.logging.level)
        get_logger("boardforge", level=request.logging.level)

    if not saved:
        return _save_failed()

    logger.info("Preferences updated")
    return JSONResponse(content={"success": True, "preferences": _preferences.get_all_preferences()})


@router.post("/reset")
async def reset_preferences() -> JSONResponse:
    """Reset all preferences to defaults"""
    if _preferences is None:
        return _not_initialized()
    if not _preferences.reset_to_defaults():
        return _save_failed()
    return JSONResponse(content={"success": True, "preferences": _preferences.get_all_preferences()})


@router.delete("/recent")
async def clear_recent_projects() -> JSONResponse:
    if _preferences is None:
        return _not_initialized()
    if not _preferences.clear_recent_projects():
        return _save_failed()
    return JSONResponse(content={"success": True, "recent": []})
