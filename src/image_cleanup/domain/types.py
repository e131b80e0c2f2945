"""Domain types — NewType aliases for type-safe identifiers."""

from typing import NewType

RunId = NewType("RunId", str)
ImageId = NewType("ImageId", str)
