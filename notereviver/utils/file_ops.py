"""File tree rendering for revived output."""

import subprocess
from pathlib import Path


def get_file_tree(root: Path, depth: int = 3) -> str:
    """Render a directory tree using the ``tree`` command, with a fallback.

    Args:
        root: Directory to render
        depth: Maximum depth to display

    Returns:
        String representation of the directory tree
    """
    try:
        result = subprocess.run(
            ["tree", f"-L{depth}", "--noreport", str(root)],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return file_tree_fallback(root, depth)


def file_tree_fallback(dir_path: Path, max_depth: int = 3) -> str:
    """Render a tree like the ``tree`` command without external tools.

    Directories are listed before files, each group sorted case-insensitively.
    """
    lines = [dir_path.name]
    lines.extend(_tree_lines(dir_path, max_depth, ""))
    return "\n".join(lines)


def _tree_lines(dir_path: Path, depth: int, prefix: str) -> list[str]:
    if depth <= 0:
        return []

    try:
        items = sorted(dir_path.iterdir(), key=lambda p: (p.is_file(), p.name.lower()))
    except PermissionError:
        return [f"{prefix}└── [Permission Denied]"]

    lines = []
    for i, item in enumerate(items):
        is_last = i == len(items) - 1
        lines.append(f"{prefix}{'└── ' if is_last else '├── '}{item.name}")
        if item.is_dir():
            next_prefix = prefix + ("    " if is_last else "│   ")
            lines.extend(_tree_lines(item, depth - 1, next_prefix))
    return lines
