import textwrap
from pathlib import Path

import pytest

from testqueue import Queue, QueueFailed, SubQueue
from testqueue.loader import discover, load_directory, load_test_module, strip_number

PASSING = """
def test(pass_, fail):
    pass_()
"""

FAILING = """
def test(pass_, fail):
    fail("nope")
"""


def write(path: Path, source: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source))
    return path


@pytest.mark.parametrize(
    "name, expected",
    [
        ("1. name", "name"),
        ("02-login", "login"),
        ("3_logout", "logout"),
        ("10) cleanup", "cleanup"),
        ("plain", "plain"),
        ("42", "42"),
        ("7 wonders", "wonders"),
        ("3d_rendering", "3d_rendering"),
        ("2fa-login", "2fa-login"),
    ],
)
def test_strip_number(name, expected):
    assert strip_number(name) == expected


def test_discover_orders_by_leading_number(tmp_path):
    for name in ("10. tenth.py", "2. second.py", "1. first.py", "zeta.py"):
        write(tmp_path / name, PASSING)

    assert [p.name for p in discover(tmp_path)] == [
        "1. first.py",
        "2. second.py",
        "10. tenth.py",
        "zeta.py",
    ]


def test_digits_inside_a_word_are_not_an_ordering_number(tmp_path):
    for name in ("3d_rendering.py", "5. fifth.py", "1. first.py"):
        write(tmp_path / name, PASSING)

    assert [p.name for p in discover(tmp_path)] == [
        "1. first.py",
        "5. fifth.py",
        "3d_rendering.py",
    ]


def test_discover_skips_private_and_non_python(tmp_path):
    write(tmp_path / "a.py", PASSING)
    write(tmp_path / "_helpers.py", PASSING)
    write(tmp_path / ".hidden.py", PASSING)
    write(tmp_path / "notes.txt", "not a test")
    (tmp_path / "__pycache__").mkdir()

    assert [p.name for p in discover(tmp_path)] == ["a.py"]


def test_load_directory_names_entries(tmp_path):
    write(tmp_path / "1. first.py", PASSING)
    write(tmp_path / "2. second.py", PASSING)

    queue = load_directory(tmp_path)
    assert [e.name for e in queue.entries] == ["1. first", "2. second"]

    queue = load_directory(tmp_path, strip_number=True)
    assert [e.name for e in queue.entries] == ["first", "second"]


def test_load_directory_passes_options(tmp_path):
    write(tmp_path / "a.py", PASSING)
    queue = load_directory(tmp_path, stop_on_fail=False, timeout=2.5)
    assert queue.stop_on_fail is False
    assert queue.timeout == 2.5


def test_subdirectories_become_nested_queues(tmp_path):
    write(tmp_path / "1. unit" / "a.py", PASSING)
    write(tmp_path / "2. empty" / "readme.txt", "nothing here")
    write(tmp_path / "3. last.py", PASSING)

    queue = load_directory(tmp_path, strip_number=True)

    assert [e.name for e in queue.entries] == ["unit", "last"]
    nested = queue.entries[0].runnable
    assert isinstance(nested, SubQueue)
    assert [e.name for e in nested.queue.entries] == ["a"]


def test_module_exporting_a_queue(tmp_path):
    write(
        tmp_path / "suite.py",
        """
        from testqueue import Queue

        def _ok(pass_, fail):
            pass_()

        queue = Queue().add_test("one", _ok).add_test("two", _ok)
        """,
    )

    unit = load_test_module(tmp_path / "suite.py")
    assert isinstance(unit, Queue)
    assert len(unit) == 2


def test_module_without_test_unit(tmp_path):
    write(tmp_path / "empty.py", "VALUE = 1\n")
    with pytest.raises(TypeError, match="empty.py"):
        load_test_module(tmp_path / "empty.py")


def test_load_test_module_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_test_module(tmp_path / "missing.py")


def test_load_directory_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_directory(tmp_path / "missing")

    file_path = write(tmp_path / "a.py", PASSING)
    with pytest.raises(NotADirectoryError):
        load_directory(file_path)


def test_setup_module_hooks(tmp_path):
    write(
        tmp_path / "_setup.py",
        """
        def setup():
            pass

        def teardown():
            pass
        """,
    )
    write(tmp_path / "a.py", PASSING)

    queue = load_directory(tmp_path)

    assert queue._setup_fn.__name__ == "setup"
    assert queue._teardown_fn.__name__ == "teardown"
    assert [e.name for e in queue.entries] == ["a"]


@pytest.mark.asyncio
async def test_loaded_queue_runs(tmp_path):
    write(tmp_path / "1. ok.py", PASSING)
    write(tmp_path / "2. nested" / "inner.py", PASSING)
    write(tmp_path / "3. broken.py", FAILING)
    write(tmp_path / "4. never.py", PASSING)

    queue = load_directory(tmp_path, strip_number=True)

    with pytest.raises(QueueFailed) as exc_info:
        await queue.run()

    assert exc_info.value.results.passed == 2
    assert exc_info.value.results.failed == 1
