#!/usr/bin/env python3
"""
BoardForge - Main Application
FastAPI server exposing the project manager to a frontend
"""

import asyncio
import logging
from typing import Callable, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from boardforge import __version__
from boardforge.api.routes import boards as board_routes
from boardforge.api.routes import preferences as preferences_routes
from boardforge.api.routes import project as project_routes
from boardforge.providers.board.board_registry import get_board_registry
from boardforge.services.preferences import get_preferences
from boardforge.services.project import Project
from boardforge.services.websocket_manager import websocket_manager
from boardforge.utils.logger import get_logger

logger = logging.getLogger(__name__)

# Longest wait between two terminal frames when nobody requests a repaint
FRAME_TIMEOUT = 0.5

app = FastAPI(title="BoardForge", version=__version__)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Set on startup
_repaint_event: Optional[asyncio.Event] = None

# Include routers
app.include_router(board_routes.router)
app.include_router(project_routes.router)
app.include_router(preferences_routes.router)


# Global WebSocket endpoint
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Global WebSocket endpoint for real-time terminal updates"""
    await websocket_manager.connect(websocket)

    try:
        # Send the current terminal so a new client starts in sync
        project = project_routes.get_current_project()
        if project is not None:
            await websocket.send_json({"type": "terminal", "data": _terminal_payload(project)})

        # Keep connection alive; clients only listen
        while True:
            await websocket.receive_text()

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        websocket_manager.disconnect(websocket)


@app.get("/")
async def root():
    return {"name": "BoardForge", "version": __version__, "status": "running"}


def _terminal_payload(project: Project) -> dict:
    return {"terminal": project.terminal_buffer, "running": project.is_running}


def make_repaint_callback(loop: asyncio.AbstractEventLoop, event: asyncio.Event) -> Callable[[], None]:
    """Repaint request for command workers: wakes the terminal frame loop from any thread"""

    def request_repaint():
        if not loop.is_closed():
            loop.call_soon_threadsafe(event.set)

    return request_repaint


async def terminal_frame_loop(event: asyncio.Event):
    """
    Per-frame poll: drain command output into the transcript and push it
    to connected clients. Never blocks on the command workers.
    """
    while True:
        try:
            await asyncio.wait_for(event.wait(), timeout=FRAME_TIMEOUT)
        except asyncio.TimeoutError:
            pass
        event.clear()

        project = project_routes.get_current_project()
        if project is None:
            continue
        try:
            if project.poll_output() and websocket_manager.has_clients:
                await websocket_manager.broadcast("terminal", _terminal_payload(project))
        except Exception as e:
            logger.error(f"Terminal frame failed: {e}")


@app.on_event("startup")
async def startup_event():
    """Load configuration and the board catalog, create the initial project"""
    global _repaint_event

    preferences = get_preferences()
    get_logger("boardforge", level=preferences.get_log_level())

    registry = get_board_registry(preferences.get_boards_directory() or None)
    build = preferences.get_build_config()
    project = Project(build_tool=build["tool"], stop_on_failure=build["stop_on_failure"])

    loop = asyncio.get_running_loop()
    _repaint_event = asyncio.Event()
    project_routes.set_project_context(
        project, registry, preferences, request_repaint=make_repaint_callback(loop, _repaint_event)
    )
    board_routes.set_board_registry(registry)
    preferences_routes.set_preferences_service(preferences)

    asyncio.create_task(terminal_frame_loop(_repaint_event))

    logger.info(f"BoardForge {__version__} starting up with {len(registry)} known boards")


@app.on_event("shutdown")
async def shutdown_event():
    """Save the open project on shutdown"""
    logger.info("BoardForge shutting down...")
    project = project_routes.get_current_project()
    if project is not None and project.location is not None:
        project.save()


def run(host: str = "127.0.0.1", port: int = 8000):
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
