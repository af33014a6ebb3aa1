from doclens_core.sources.base import ContentSource
from doclens_core.sources.filesystem import FileSystemSource

__all__ = ["ContentSource", "FileSystemSource"]
