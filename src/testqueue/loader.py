# loader.py
from __future__ import annotations

import re
import runpy
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .queue import Queue

SETUP_MODULE = "_setup.py"

# the number must be followed by a separator, whitespace or the end of the name
_NUMBER_PREFIX = re.compile(r"^\s*(\d+)(?:\s*[.\-_)]\s*|\s+|$)")


# ----------------------------------------------------------------------
# Naming
# ----------------------------------------------------------------------

def strip_number(name: str) -> str:
    """
    Remove a leading ordering number: "1. name" -> "name", "02-name" -> "name".

    Names that are only a number are left unchanged.
    """
    stripped = _NUMBER_PREFIX.sub("", name, count=1)
    return stripped or name


def _label(path: Path) -> str:
    # directory names such as "1. basics" have no suffix to drop
    return path.name if path.is_dir() else path.stem


def _sort_key(path: Path) -> Tuple[int, int, str]:
    m = _NUMBER_PREFIX.match(_label(path))
    if m:
        return (0, int(m.group(1)), path.name.lower())
    return (1, 0, path.name.lower())


def _is_candidate(path: Path) -> bool:
    if path.name.startswith(("_", ".")):
        return False
    if path.is_dir():
        return True
    return path.suffix == ".py"


# ----------------------------------------------------------------------
# Module loading
# ----------------------------------------------------------------------

def _run_module(path: Path) -> Dict[str, Any]:
    module_name = f"testqueue_{path.stem}"
    return runpy.run_path(str(path), run_name=module_name)


def load_test_module(path: str | Path):
    """
    Load one test module and return its test unit.

    The file must define either:
      - queue = Queue(...)
      - def test(pass_, fail): ...

    Returns:
      Queue or callable
    """
    mod_path = Path(path).expanduser().resolve()
    if not mod_path.exists():
        raise FileNotFoundError(f"Test module not found: {mod_path}")
    if mod_path.suffix != ".py":
        raise ValueError(f"Test module must be a .py file, got: {mod_path.name}")

    globals_dict = _run_module(mod_path)

    unit = globals_dict.get("queue")
    if isinstance(unit, Queue):
        return unit

    unit = globals_dict.get("test")
    if callable(unit) and not isinstance(unit, type):
        return unit

    raise TypeError(
        f"{mod_path.name} must define `queue = Queue(...)` or a "
        "`test(pass_, fail)` function."
    )


def _apply_setup_module(queue: Queue, directory: Path) -> None:
    setup_path = directory / SETUP_MODULE
    if not setup_path.is_file():
        return

    globals_dict = _run_module(setup_path)
    setup_fn = globals_dict.get("setup")
    teardown_fn = globals_dict.get("teardown")
    if setup_fn is not None:
        queue.setup(setup_fn)
    if teardown_fn is not None:
        queue.teardown(teardown_fn)


# ----------------------------------------------------------------------
# Directory loading
# ----------------------------------------------------------------------

def discover(directory: str | Path) -> List[Path]:
    """Return test files and subdirectories of `directory` in run order."""
    root = Path(directory)
    return sorted((p for p in root.iterdir() if _is_candidate(p)), key=_sort_key)


def load_directory(
    path: str | Path,
    *,
    strip_number: bool = False,
    stop_on_fail: bool = True,
    timeout: Optional[float] = None,
) -> Queue:
    """
    Build a Queue from a directory of test modules.

    Each *.py file becomes one entry named after the file. Each subdirectory
    with at least one test becomes a nested queue loaded the same way.
    """
    directory = Path(path).expanduser().resolve()
    if not directory.exists():
        raise FileNotFoundError(f"Test directory not found: {directory}")
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")

    queue = Queue(stop_on_fail=stop_on_fail, timeout=timeout)
    _apply_setup_module(queue, directory)

    for item in discover(directory):
        name = _entry_name(item, strip=strip_number)
        if item.is_dir():
            sub = load_directory(
                item,
                strip_number=strip_number,
                stop_on_fail=stop_on_fail,
                timeout=timeout,
            )
            if len(sub) == 0:
                continue
            queue.add_test(name, sub)
        else:
            queue.add_test(name, load_test_module(item))

    return queue


def _entry_name(path: Path, *, strip: bool) -> str:
    name = _label(path)
    return strip_number(name) if strip else name
