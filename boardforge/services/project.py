"""
Project Service
A project pairs a system of boards with a source directory and drives the
build tool against it. The project is the unit of persistence: its manifest
lives at the root of the project directory.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import yaml

from boardforge.providers.board.board_definitions import Board
from boardforge.services import build_operations
from boardforge.services.command_pipeline import CommandPipeline, CommandSpec, RepaintCallback, RunComplete
from boardforge.services.scaffold import copy_template, load_snippet
from boardforge.services.system_model import System

logger = logging.getLogger(__name__)

PROJECT_FILE_NAME = ".boardforge.yaml"
MANIFEST_VERSION = 1

# Interactive collaborators. Returning None means the user cancelled.
DirectoryPicker = Callable[[], Optional[Path]]
SavePathPicker = Callable[[Path], Optional[Path]]


class ProjectViewType(Enum):
    """Which project view the frontend shows"""

    BOARDS = "boards"
    DEVELOPMENT = "development"
    FILES = "files"


class Project:
    """
    The highest level object of BoardForge: a main, programmable board,
    a set of peripheral boards, and the project/source code directory.

    Transient state (terminal transcript, command pipeline, last run
    result) is never written to the manifest.
    """

    def __init__(
        self,
        name: str = "",
        location: Optional[Path] = None,
        system: Optional[System] = None,
        current_view: ProjectViewType = ProjectViewType.BOARDS,
        build_tool: str = build_operations.DEFAULT_BUILD_TOOL,
        stop_on_failure: bool = False,
    ):
        self.name = name
        self.location: Optional[Path] = Path(location) if location else None
        self.system = system if system is not None else System()
        self.current_view = current_view

        self.build_tool = build_tool
        self.stop_on_failure = stop_on_failure
        self.terminal_buffer = ""
        self.pipeline = CommandPipeline(stop_on_failure=stop_on_failure)
        self.last_result: Optional[RunComplete] = None
        # last user-facing notice, reset by every operation that can be refused
        self.last_notice = ""

    # ==================== Transcript ====================

    def _append_terminal(self, line: str):
        self.terminal_buffer += line + "\n"

    def _notice(self, msg: str):
        self.last_notice = msg
        self._append_terminal(msg)

    def info_logger(self, msg: str):
        """Print both to the logs and to the built-in terminal"""
        logger.info(msg)
        self._notice(msg)

    def warn_logger(self, msg: str, detail: str = ""):
        logger.warning(f"{msg}: {detail}" if detail else msg)
        self._notice(msg)

    # ==================== Boards ====================

    def has_main_board(self) -> bool:
        return self.system.has_main()

    def get_location(self) -> str:
        return str(self.location) if self.location else ""

    def rename(self, name: str):
        self.name = name

    def apply_build_settings(self, build_tool: str, stop_on_failure: bool):
        """Host configuration changed; applies from the next run"""
        self.build_tool = build_tool
        self.stop_on_failure = stop_on_failure
        self.pipeline.stop_on_failure = stop_on_failure

    def add_board(self, board: Board) -> bool:
        """The single entry point for adding boards, routed by role"""
        self.last_notice = ""
        if board.is_main_board:
            if not self.system.set_main(board):
                self._notice("project already contains a main board")
                return False
            return True

        if not self.system.add_peripheral(board):
            logger.info(f"project <{self.name}> already contains board <{board}>")
            self._notice("project already contains that board")
            return False
        return True

    def remove_board(self, board: Board) -> bool:
        if not self.system.remove_board(board):
            logger.info(f"project <{self.name}> does not contain board <{board}>")
            return False
        return True

    def load_board_resources(self, known_boards: Iterable[Board]):
        """Populate the project boards from the app-wide known boards list"""
        self.system.resolve_against(known_boards)

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "manifest_version": MANIFEST_VERSION,
            "name": self.name,
            "current_view": self.current_view.value,
            "system": self.system.to_dict(),
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **settings) -> "Project":
        """
        Build a project from manifest data; missing keys take defaults.

        Raises ValueError on malformed data.
        """
        if not isinstance(data, dict):
            raise ValueError("project manifest must contain a mapping")

        version = data.get("manifest_version", MANIFEST_VERSION)
        if version != MANIFEST_VERSION:
            logger.warning(f"project manifest version {version} differs from {MANIFEST_VERSION}")

        view = data.get("current_view", ProjectViewType.BOARDS.value)
        try:
            current_view = ProjectViewType(view)
        except ValueError:
            logger.warning(f"unknown project view {view!r}, using the boards view")
            current_view = ProjectViewType.BOARDS

        return cls(
            name=str(data.get("name") or ""),
            system=System.from_dict(data.get("system")),
            current_view=current_view,
            **settings,
        )

    @classmethod
    def from_yaml(cls, text: str, **settings) -> "Project":
        return cls.from_dict(yaml.safe_load(text), **settings)

    def _replace_with(self, other: "Project"):
        self.name = other.name
        self.location = other.location
        self.system = other.system
        self.current_view = other.current_view
        self.terminal_buffer = other.terminal_buffer
        self.pipeline = other.pipeline
        self.last_result = other.last_result
        self.last_notice = other.last_notice

    # ==================== Persistence ====================

    def open(
        self,
        directory: Optional[Path] = None,
        picker: Optional[DirectoryPicker] = None,
        known_boards: Optional[Iterable[Board]] = None,
    ) -> bool:
        """
        Load the project found in ``directory`` (or a picked directory)
        and replace this project with it.

        Returns:
            True on success; False if cancelled or the manifest is unusable,
            in which case the current project is left untouched
        """
        self.last_notice = ""
        if directory is None:
            directory = picker() if picker else None
            if directory is None:
                logger.info("project open aborted")
                return False

        project_folder = Path(directory)
        project_file = project_folder / PROJECT_FILE_NAME
        try:
            text = project_file.read_text(encoding="utf-8")
            loaded = Project.from_yaml(text, build_tool=self.build_tool, stop_on_failure=self.stop_on_failure)
        except OSError as e:
            self.warn_logger(f"error opening project: can't read {project_file}", str(e))
            return False
        except (yaml.YAMLError, ValueError) as e:
            self.warn_logger("error opening project", f"perhaps the file is misformatted? {e}")
            return False

        loaded.location = project_folder
        if known_boards is not None:
            loaded.load_board_resources(known_boards)
        self._replace_with(loaded)
        logger.info(f"opened project <{self.name}> at {project_folder}")
        return True

    def save(self, picker: Optional[DirectoryPicker] = None) -> bool:
        """Write the manifest; without a location this is save_as"""
        self.last_notice = ""
        if self.location is None:
            logger.info("no project location, calling save_as...")
            return self.save_as(picker)
        return self._write_manifest()

    def save_as(self, picker: Optional[DirectoryPicker] = None) -> bool:
        """
        Save into a picked directory, scaffolding it from the board template.

        Refuses to touch a directory that already holds a project manifest.
        """
        self.last_notice = ""
        project_folder = picker() if picker else None
        if project_folder is None:
            logger.info("project save aborted")
            return False
        project_folder = Path(project_folder)

        if not project_folder.is_dir():
            self.warn_logger(f"can't save project: {project_folder} is not a directory")
            return False

        # check if there is an existing project file that we might overwrite
        if (project_folder / PROJECT_FILE_NAME).exists():
            logger.warning(
                "you might be overwriting an existing BoardForge project! Are you sure you wish to continue?"
            )
            self._notice("beware of overwriting an existing project file!")
            return False

        previous_location = self.location
        self.location = project_folder

        # manifest first: a folder we could not claim is left without template files
        if not self._write_manifest():
            self.location = previous_location
            return False

        template_board = self._template_board()
        if template_board is not None:
            failed = copy_template(template_board.template_dir, project_folder)
            if failed:
                self._notice(f"{len(failed)} template item(s) could not be copied")
        return True

    def _template_board(self) -> Optional[Board]:
        """Main board template first, else the first peripheral that has one"""
        for board in self.system.all_boards():
            if board.get_template_dir() is not None:
                return board
        return None

    def _write_manifest(self) -> bool:
        project_file = self.location / PROJECT_FILE_NAME
        logger.info(f"saving project file to {project_file}")
        try:
            project_file.write_text(self.to_yaml(), encoding="utf-8")
        except OSError as e:
            self.warn_logger(f"error saving project file {project_file}", str(e))
            return False
        return True

    def new_file(self, picker: SavePathPicker) -> Optional[Path]:
        """Create an empty file at a path picked inside the project"""
        self.last_notice = ""
        if self.location is None:
            self.info_logger("must save project before adding files/directories")
            return None

        path = picker(self.location)
        if path is None:
            logger.warning("error getting file path")
            return None

        path = Path(path)
        if not path.is_absolute():
            path = self.location / path

        try:
            with open(path, "x", encoding="utf-8"):
                pass
        except FileExistsError:
            self.warn_logger(f"file {path} already exists")
            return None
        except OSError as e:
            self.warn_logger(f"couldn't create file {path}", str(e))
            return None

        logger.info(f"created file {path}")
        return path

    # ==================== Build / provisioning ====================

    @property
    def is_running(self) -> bool:
        return self.pipeline.is_running

    def build(self, request_repaint: Optional[RepaintCallback] = None) -> bool:
        """Build the code"""
        self.last_notice = ""
        if self.location is None:
            self.info_logger("project needs a valid working directory before building")
            return False
        logger.info(f"building project at {self.location}")
        return self.run_background_commands(
            build_operations.build_commands(self.location, tool=self.build_tool), request_repaint
        )

    def load_to_board(self, request_repaint: Optional[RepaintCallback] = None) -> bool:
        """Load the code onto the main board"""
        self.last_notice = ""
        if self.location is None:
            self.info_logger("project needs a valid working directory before loading")
            return False
        return self.run_background_commands(
            build_operations.run_commands(self.location, tool=self.build_tool), request_repaint
        )

    def add_dependencies(self, request_repaint: Optional[RepaintCallback] = None) -> bool:
        """Install the crates every board of the system requires, in a single run"""
        self.last_notice = ""
        if self.location is None:
            self.info_logger("project needs a valid working directory before adding dependencies")
            return False

        cmds = build_operations.dependency_commands(self.system, self.location, self.name, tool=self.build_tool)
        if not cmds:
            self.info_logger("no board in the project requires additional crates")
            return False

        logger.info(f"installing required crates: {', '.join(build_operations.required_crates(self.system))}")
        return self.run_background_commands(cmds, request_repaint)

    def load_snippets(self) -> Dict[str, str]:
        """
        Example code for every required crate, taken from the first board
        (main board first) that ships a snippet for it.

        Crates without a snippet map to an empty string.
        """
        snippets: Dict[str, str] = {}
        boards = [b for b in self.system.all_boards() if b.snippets_dir is not None]
        for crate in build_operations.required_crates(self.system):
            snippets[crate] = next(
                (text for text in (load_snippet(b.snippets_dir, crate) for b in boards) if text), ""
            )
            if not snippets[crate]:
                logger.info(f"no code snippets for crate {crate}")
        return snippets

    def run_background_commands(self, cmds: List[CommandSpec], request_repaint: Optional[RepaintCallback] = None) -> bool:
        """Hand ``cmds`` to the pipeline; output shows up through poll_output"""
        if not self.pipeline.run(cmds, request_repaint):
            self._notice("a command is already running, wait for it to finish")
            return False
        self.last_result = None
        return True

    def poll_output(self) -> int:
        """
        Move whatever output is available into the terminal transcript.

        Never blocks. Returns the number of channel items consumed.
        """
        items = self.pipeline.drain()
        for item in items:
            if isinstance(item, RunComplete):
                self.last_result = item
                if item.error:
                    self._append_terminal(item.error)
                else:
                    self._append_terminal(f"finished with exit status {item.exit_code}")
            else:
                self._append_terminal(item)
        return len(items)
