"""Platform-appropriate PATH construction without spawning a shell.

Packaged Windows apps often start with a reduced PATH, and a failed shell
spawn on macOS/Linux leaves only the launcher's PATH. These helpers append
well-known install locations so user-installed tools can still be found.
Directories are listed speculatively; nothing here touches the filesystem.
"""

import ntpath
import os
import posixpath
import sys
from pathlib import Path
from typing import Mapping, Optional


def path_separator(platform: str) -> str:
    return ";" if platform == "win32" else ":"


def _pathmod(platform: str):
    return ntpath if platform == "win32" else posixpath


def home_directory(environ: Mapping[str, str], platform: str) -> str:
    """Best-effort home directory from the given environment."""
    keys = ("USERPROFILE", "HOME") if platform == "win32" else ("HOME",)
    for key in keys:
        value = environ.get(key)
        if value:
            return value
    return str(Path.home())


def windows_candidate_dirs(environ: Mapping[str, str]) -> list[str]:
    """Common install locations for user tools on Windows."""
    home = home_directory(environ, "win32")
    system_root = environ.get("SystemRoot") or "C:\\Windows"
    program_files = environ.get("ProgramFiles") or "C:\\Program Files"
    program_files_x86 = environ.get("ProgramFiles(x86)") or "C:\\Program Files (x86)"
    local_app_data = environ.get("LOCALAPPDATA") or ntpath.join(home, "AppData", "Local")

    return [
        # User-local installs (native installer default)
        ntpath.join(home, ".local", "bin"),
        ntpath.join(program_files, "Claude"),
        ntpath.join(program_files_x86, "Claude"),
        ntpath.join(local_app_data, "Programs", "Claude"),
        # Git for Windows
        "C:\\Program Files\\Git\\cmd",
        "C:\\Program Files\\Git\\bin",
        ntpath.join(system_root, "System32"),
        system_root,
    ]


def unix_candidate_dirs(environ: Mapping[str, str]) -> list[str]:
    """Common install locations on macOS and Linux."""
    home = home_directory(environ, "linux")
    return [
        posixpath.join(home, ".local", "bin"),
        "/opt/homebrew/bin",
        "/usr/local/bin",
        "/usr/bin",
        "/bin",
        "/usr/sbin",
        "/sbin",
    ]


def get_path_value(environ: Mapping[str, str], platform: str) -> str:
    """Read PATH, matching the key case-insensitively on Windows."""
    if platform != "win32":
        return environ.get("PATH", "")
    for key, value in environ.items():
        if key.upper() == "PATH":
            return value
    return ""


def build_platform_path(
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
    extra_dirs: Optional[list[str]] = None,
) -> str:
    """Combine the existing PATH with well-known install directories.

    Existing entries keep their order (empty entries dropped). Each candidate
    is normalized and appended only if no entry already present matches it
    case-insensitively.

    Args:
        environ: Environment to read PATH and locations from (default: os.environ)
        platform: Platform string as in sys.platform (default: current)
        extra_dirs: Candidates to use instead of the platform defaults

    Returns:
        PATH string joined with the platform separator
    """
    environ = os.environ if environ is None else environ
    platform = platform or sys.platform
    sep = path_separator(platform)
    pathmod = _pathmod(platform)

    entries = [p for p in get_path_value(environ, platform).split(sep) if p]
    seen = {pathmod.normpath(p).lower() for p in entries}

    if extra_dirs is not None:
        candidates = extra_dirs
    elif platform == "win32":
        candidates = windows_candidate_dirs(environ)
    else:
        candidates = unix_candidate_dirs(environ)

    for candidate in candidates:
        normalized = pathmod.normpath(candidate)
        key = normalized.lower()
        if key in seen:
            continue
        seen.add(key)
        entries.append(normalized)

    return sep.join(entries)
