"""
Project API Routes
Endpoints for the current project: boards, persistence, build runs and the terminal
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from boardforge.providers.board.board_registry import BoardRegistry
from boardforge.services.preferences import PreferencesService
from boardforge.services.project import Project, ProjectViewType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/project", tags=["project"])

# Services (injected from main.py)
_project: Optional[Project] = None
_registry: Optional[BoardRegistry] = None
_preferences: Optional[PreferencesService] = None
_request_repaint: Optional[Callable[[], None]] = None


def set_project_context(
    project: Project,
    registry: BoardRegistry,
    preferences: Optional[PreferencesService] = None,
    request_repaint: Optional[Callable[[], None]] = None,
):
    """Inject the current project and the services it works with."""
    global _project, _registry, _preferences, _request_repaint
    _project = project
    _registry = registry
    _preferences = preferences
    _request_repaint = request_repaint


def get_current_project() -> Optional[Project]:
    return _project


class DirectoryRequest(BaseModel):
    """A picked directory; omitting it means the user cancelled the picker"""

    directory: Optional[str] = Field(default=None, max_length=4096)

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    def picker(self) -> Callable[[], Optional[Path]]:
        return lambda: Path(self.directory).expanduser() if self.directory else None


class FileRequest(BaseModel):
    """A picked file path, absolute or relative to the project"""

    path: Optional[str] = Field(default=None, max_length=4096)


class RenameRequest(BaseModel):
    name: str = Field(..., max_length=100)


class ViewRequest(BaseModel):
    view: ProjectViewType


class AddBoardRequest(BaseModel):
    identifier: str = Field(..., min_length=1, max_length=255)


def _not_initialized() -> JSONResponse:
    logger.error("Project service not initialized")
    return JSONResponse(status_code=500, content={"success": False, "error": "Project service not initialized"})


def _rejected(project: Project, default: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": project.last_notice or default},
    )


def _project_status(project: Project) -> dict:
    return {
        "name": project.name,
        "location": project.get_location(),
        "current_view": project.current_view.value,
        "has_main_board": project.has_main_board(),
        "main_board": project.system.main_board.to_dict() if project.system.main_board else None,
        "boards": [b.to_dict() for b in project.system.boards],
        "running": project.is_running,
    }


def _remember(project: Project):
    if _preferences is not None and project.location is not None:
        _preferences.add_recent_project(str(project.location))


@router.get("")
async def get_project() -> JSONResponse:
    """Current project state (manifest fields plus location and run state)."""
    if _project is None:
        return _not_initialized()
    return JSONResponse(content=_project_status(_project))


@router.post("/new")
async def new_project() -> JSONResponse:
    """Replace the current project with an empty one."""
    global _project
    if _project is None:
        return _not_initialized()

    _project = Project(build_tool=_project.build_tool, stop_on_failure=_project.stop_on_failure)
    logger.info("Started a new project")
    return JSONResponse(content={"success": True, "project": _project_status(_project)})


@router.post("/open")
async def open_project(request: DirectoryRequest) -> JSONResponse:
    """Open the project stored in a directory."""
    if _project is None:
        return _not_initialized()

    known_boards = _registry.list_boards() if _registry is not None else None
    if not _project.open(picker=request.picker(), known_boards=known_boards):
        if request.directory is None:
            return JSONResponse(content={"success": False, "cancelled": True})
        return _rejected(_project, "Failed to open project")

    _remember(_project)
    return JSONResponse(content={"success": True, "project": _project_status(_project)})


@router.post("/save")
async def save_project(request: Optional[DirectoryRequest] = None) -> JSONResponse:
    """Save the project; behaves as save-as when it has no location yet."""
    if _project is None:
        return _not_initialized()

    request = request or DirectoryRequest()
    if not _project.save(picker=request.picker()):
        if _project.location is None and request.directory is None:
            return JSONResponse(content={"success": False, "cancelled": True})
        return _rejected(_project, "Failed to save project", status_code=409)

    _remember(_project)
    return JSONResponse(content={"success": True, "project": _project_status(_project)})


@router.post("/save-as")
async def save_project_as(request: DirectoryRequest) -> JSONResponse:
    """Save into a new directory, scaffolding it from the board template."""
    if _project is None:
        return _not_initialized()

    if not _project.save_as(picker=request.picker()):
        if request.directory is None:
            return JSONResponse(content={"success": False, "cancelled": True})
        return _rejected(_project, "Failed to save project", status_code=409)

    _remember(_project)
    return JSONResponse(content={"success": True, "project": _project_status(_project)})


@router.put("/name")
async def rename_project(request: RenameRequest) -> JSONResponse:
    if _project is None:
        return _not_initialized()
    _project.rename(request.name)
    return JSONResponse(content={"success": True, "name": _project.name})


@router.put("/view")
async def set_project_view(request: ViewRequest) -> JSONResponse:
    if _project is None:
        return _not_initialized()
    _project.current_view = request.view
    return JSONResponse(content={"success": True, "current_view": _project.current_view.value})


@router.post("/boards")
async def add_board(request: AddBoardRequest) -> JSONResponse:
    """Add a board from the registry to the project."""
    if _project is None or _registry is None:
        return _not_initialized()

    board = _registry.get_board(request.identifier)
    if board is None:
        return JSONResponse(
            status_code=404, content={"success": False, "error": f"Unknown board: {request.identifier}"}
        )

    if not _project.add_board(board):
        return _rejected(_project, "Board rejected", status_code=409)

    logger.info(f"Added board {board.identifier} to project")
    return JSONResponse(content={"success": True, "project": _project_status(_project)})


@router.delete("/boards/{identifier:path}")
async def remove_board(identifier: str) -> JSONResponse:
    if _project is None:
        return _not_initialized()

    board = next((b for b in _project.system.all_boards() if b.identifier == identifier), None)
    if board is None or not _project.remove_board(board):
        return JSONResponse(status_code=404, content={"success": False, "error": f"Board not in project: {identifier}"})
    return JSONResponse(content={"success": True, "project": _project_status(_project)})


@router.post("/build")
async def build_project() -> JSONResponse:
    if _project is None:
        return _not_initialized()
    if not _project.build(_request_repaint):
        return _rejected(_project, "Build not started", status_code=409)
    return JSONResponse(content={"success": True, "running": True})


@router.post("/load")
async def load_project_to_board() -> JSONResponse:
    if _project is None:
        return _not_initialized()
    if not _project.load_to_board(_request_repaint):
        return _rejected(_project, "Load not started", status_code=409)
    return JSONResponse(content={"success": True, "running": True})


@router.post("/dependencies")
async def add_project_dependencies() -> JSONResponse:
    """Initialize the crate manifest and add every crate the boards require."""
    if _project is None:
        return _not_initialized()
    if not _project.add_dependencies(_request_repaint):
        return _rejected(_project, "Dependency installation not started", status_code=409)
    return JSONResponse(content={"success": True, "running": True})


@router.get("/snippets")
async def get_crate_snippets() -> JSONResponse:
    """Example code for each crate the project's boards require."""
    if _project is None:
        return _not_initialized()
    return JSONResponse(content={"snippets": _project.load_snippets()})


@router.post("/files")
async def new_project_file(request: FileRequest) -> JSONResponse:
    """Create an empty file inside the project."""
    if _project is None:
        return _not_initialized()

    path = _project.new_file(lambda _start: Path(request.path) if request.path else None)
    if path is None:
        if request.path is None and _project.location is not None:
            return JSONResponse(content={"success": False, "cancelled": True})
        return _rejected(_project, "File not created", status_code=409)
    return JSONResponse(content={"success": True, "path": str(path)})


@router.get("/terminal")
async def get_terminal() -> JSONResponse:
    """Drain pending command output into the transcript and return it."""
    if _project is None:
        return _not_initialized()

    _project.poll_output()
    result = _project.last_result
    return JSONResponse(
        content={
            "terminal": _project.terminal_buffer,
            "running": _project.is_running,
            "last_result": (
                {"exit_code": result.exit_code, "commands_run": result.commands_run, "error": result.error}
                if result is not None
                else None
            ),
        }
    )
