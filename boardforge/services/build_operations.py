"""
Build/Provisioning Operations
Translate project state into ordered build-tool invocations.

Every invocation uses the same argument template so the tool can be pointed
at a project directory other than the current one:

    <tool> -Z unstable-options -C <location> <subcommand> [args...]

These functions are pure: same input, same commands, same order.
"""

from pathlib import Path
from typing import List

from boardforge.services.command_pipeline import CommandSpec
from boardforge.services.system_model import System

DEFAULT_BUILD_TOOL = "cargo"

# Needed for `-C <dir>` (out-of-tree working directory) to be accepted
UNSTABLE_FLAGS = ("-Z", "unstable-options")


def tool_command(location: Path, *args: str, tool: str = DEFAULT_BUILD_TOOL) -> CommandSpec:
    location = Path(location)
    return CommandSpec(tool, (*UNSTABLE_FLAGS, "-C", str(location), *args), cwd=location)


def build_commands(location: Path, tool: str = DEFAULT_BUILD_TOOL) -> List[CommandSpec]:
    return [tool_command(location, "build", tool=tool)]


def run_commands(location: Path, tool: str = DEFAULT_BUILD_TOOL) -> List[CommandSpec]:
    """Load the program onto the board (for now this is the tool's `run`)"""
    return [tool_command(location, "run", tool=tool)]


def init_command(location: Path, name: str, tool: str = DEFAULT_BUILD_TOOL) -> CommandSpec:
    return tool_command(location, "init", "--name", name, "--vcs", "none", tool=tool)


def add_command(location: Path, crate: str, tool: str = DEFAULT_BUILD_TOOL) -> CommandSpec:
    return tool_command(location, "add", crate, tool=tool)


def required_crates(system: System) -> List[str]:
    """
    Crates declared by the system's boards, main board first.

    A crate declared by several boards is listed once, at its first
    occurrence, so it is added to the manifest only once.
    """
    crates: List[str] = []
    for board in system.all_boards():
        for crate in board.required_crates or ():
            if crate not in crates:
                crates.append(crate)
    return crates


def dependency_commands(system: System, location: Path, name: str, tool: str = DEFAULT_BUILD_TOOL) -> List[CommandSpec]:
    """
    Commands that (re-)initialize the project manifest and add every
    required crate, as one flat list meant for a single run.

    Returns an empty list when no board declares crates.
    """
    crates = required_crates(system)
    if not crates:
        return []
    return [init_command(location, name, tool=tool)] + [add_command(location, c, tool=tool) for c in crates]
