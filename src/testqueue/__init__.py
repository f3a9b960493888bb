from .queue import Queue
from .model import Entry, LeafTest, Results, SubQueue
from .errors import QueueError, QueueFailed, SetupError, QueueBusyError, LeafTimeoutError
from .loader import load_directory
from .ui.console import ConsoleReporter, to_console

__all__ = [
    "Queue",
    "Entry",
    "LeafTest",
    "SubQueue",
    "Results",
    "QueueError",
    "QueueFailed",
    "SetupError",
    "QueueBusyError",
    "LeafTimeoutError",
    "load_directory",
    "ConsoleReporter",
    "to_console",
]
