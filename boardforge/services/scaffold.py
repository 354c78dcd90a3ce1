"""
Project scaffolding from board template and snippet directories
"""

import logging
import shutil
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


def copy_template(template_dir: Path, target_dir: Path) -> List[Path]:
    """
    Copy every entry of ``template_dir`` into ``target_dir``.

    Directories are copied recursively and merged into existing ones.
    An entry that fails to copy is skipped with a warning.

    Returns:
        The template entries that could not be copied
    """
    template_dir = Path(template_dir)
    target_dir = Path(target_dir)
    failed: List[Path] = []

    try:
        entries = sorted(template_dir.iterdir())
    except OSError as e:
        logger.warning(f"couldn't read template directory {template_dir}: {e}")
        return failed

    for entry in entries:
        destination = target_dir / entry.name
        try:
            if entry.is_dir():
                shutil.copytree(entry, destination, dirs_exist_ok=True)
            else:
                shutil.copy2(entry, destination)
        except OSError as e:
            logger.warning(f"couldn't copy template item {entry} to new project folder; {e}")
            failed.append(entry)
        else:
            logger.debug(f"copied template item {entry.name}")

    return failed


def load_snippet(snippets_dir: Path, crate_name: str) -> str:
    """
    Read the example code a board ships for ``crate_name``.

    Snippets live in ``<snippets_dir>/<crate_name>/``; the first file (by
    name) is returned. An empty string means the board has no snippet.
    """
    crate_dir = Path(snippets_dir) / crate_name
    if not crate_dir.is_dir():
        logger.debug(f"no code snippets for crate {crate_name} in {snippets_dir}")
        return ""

    try:
        files = sorted(p for p in crate_dir.iterdir() if p.is_file())
        if not files:
            return ""
        return files[0].read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"couldn't load code snippets for crate {crate_name}: {e}")
        return ""
