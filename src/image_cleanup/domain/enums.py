"""Domain enums — cleanup run completion status."""

from enum import Enum, unique


@unique
class RunStatus(Enum):
    """How a cleanup run ended."""

    SUCCESS = "success"
    ABORTED = "aborted"
