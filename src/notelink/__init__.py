"""notelink: note indexing and link completion for markdown knowledge bases."""

__version__ = "0.1.0"

from .completion import CompletionService
from .config import IndexConfig, load_config
from .core import NoteEngine
from .graph import LinkGraph
from .index import NoteIndex
from .locator import FileLocator
from .matcher import score
from .models import CompletionContext, CompletionItem, Neighborhood, Note

__all__ = [
    "CompletionContext",
    "CompletionItem",
    "CompletionService",
    "FileLocator",
    "IndexConfig",
    "LinkGraph",
    "Neighborhood",
    "Note",
    "NoteEngine",
    "NoteIndex",
    "load_config",
    "score",
]
