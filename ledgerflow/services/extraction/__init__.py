"""Statement extraction package."""
from ledgerflow.services.extraction.assisted import AssistedExtractor, OpenRouterExtractor
from ledgerflow.services.extraction.extractor import ExtractionOptions, StatementExtractor
from ledgerflow.services.extraction.text_extractor import TextExtractor

__all__ = [
    "AssistedExtractor",
    "ExtractionOptions",
    "OpenRouterExtractor",
    "StatementExtractor",
    "TextExtractor",
]
