"""Document ingestion: routing, chapter splitting and chunk cutting.

Stages overview:

1. **Route** (router.py / DocumentRouter) -- Picks a content type from a
   caller hint, source metadata or the text itself, and returns the
   matching splitter.

2. **Split** (splitters/) -- Format-aware splitters turn a document body
   into ordered chapters, merging fragments below the minimum size and
   breaking up chapters above the maximum.

3. **Cut** (chunk_cutter.py / ChunkCutter) -- Cuts an oversized chapter
   into embedding-sized chunks along paragraph, then sentence, then
   fixed-window boundaries.
"""

from src.services.ingestion.chunk_cutter import ChunkCutter, ChunkSlice
from src.services.ingestion.router import ContentType, DocumentRouter
from src.services.ingestion.splitters import (
    ContentSplitter,
    GenericSplitter,
    NormativeSplitter,
    WikiSplitter,
)

__all__ = [
    "ChunkCutter",
    "ChunkSlice",
    "ContentSplitter",
    "ContentType",
    "DocumentRouter",
    "GenericSplitter",
    "NormativeSplitter",
    "WikiSplitter",
]
