"""Knowledge-base ingestion pipeline.

Orchestrates **normalize -> chunk -> embed -> store -> index**.

1. **Normalize** (utils/text_normalizer.py) -- line endings, mojibake,
   control characters and whitespace are cleaned before anything else.

2. **Chunk** (chunker.py / TextChunker) -- content longer than the
   threshold is split into fixed-size overlapping character windows.

3. **Embed** (via IEmbeddingProvider) -- one vector per retrievable unit;
   a failed call leaves the unit with an empty vector.

4. **Store / index** (via IDocumentStore and IVectorIndex) -- records go
   to the document store, embedded units to the vector index.

The IngestionService class runs all stages and also removes documents
together with their chunks.
"""

from asash.services.ingestion.chunker import TextChunker
from asash.services.ingestion.ingestion_service import (
    IngestionService,
    parse_category,
    parse_tags,
)

__all__ = [
    "IngestionService",
    "TextChunker",
    "parse_category",
    "parse_tags",
]
