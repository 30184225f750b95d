"""Chunking engine with boundary-preferring recursive splitting."""
import logging
from typing import List

from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)


class ChunkingEngine:
    """Splits extracted text into overlapping, bounded-size chunks."""

    # Separators for recursive splitting, coarsest first. The empty string is the
    # character-level fallback and must stay last.
    SEPARATORS = ["\n\n", "\n", ". ", "! ", "? ", "; ", ", ", " ", ""]

    # Overlap growth is capped at this multiple of chunk_size
    MAX_GROWTH = 1.5

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target chunk size in characters
            chunk_overlap: Characters carried over from the previous chunk

        Raises:
            ValueError: If the sizes are inconsistent
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be between 0 and chunk_size - 1")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @property
    def max_chunk_length(self) -> int:
        return int(self.chunk_size * self.MAX_GROWTH)

    def split_text(self, text: str) -> List[str]:
        """
        Split text into ordered, non-empty, trimmed chunks.

        Chunks respect the coarsest separator that keeps them under chunk_size.
        Every chunk after the first is then prefixed with the tail of its
        predecessor so that context carries across boundaries.

        Args:
            text: Text to chunk

        Returns:
            List of chunk strings, empty for blank input
        """
        if not text or not text.strip():
            return []

        chunks: List[str] = []
        self._split(text, 0, chunks)

        if self.chunk_overlap == 0 or len(chunks) <= 1:
            return chunks

        return self._apply_overlap(chunks)

    def _split(self, text: str, separator_index: int, chunks: List[str]) -> None:
        """
        Split text with SEPARATORS[separator_index] or a finer one.

        Each recursive call advances separator_index, so recursion depth is
        bounded by len(SEPARATORS).
        """
        if len(text) <= self.chunk_size:
            stripped = text.strip()
            if stripped:
                chunks.append(stripped)
            return

        # Skip separators that do not actually divide this text
        parts: List[str] = []
        while separator_index < len(self.SEPARATORS) - 1:
            separator = self.SEPARATORS[separator_index]
            parts = [part for part in text.split(separator) if part]
            if len(parts) > 1:
                break
            separator_index += 1

        separator = self.SEPARATORS[separator_index]
        if not separator:
            self._hard_split(text, chunks)
            return

        current = ""
        for part in parts:
            candidate = current + separator + part if current else part
            if len(candidate) <= self.chunk_size:
                current = candidate
                continue

            if current.strip():
                chunks.append(current.strip())

            # A part that is too long on its own goes down to the next separator
            if len(part) > self.chunk_size:
                self._split(part, separator_index + 1, chunks)
                current = ""
            else:
                current = part

        if current.strip():
            chunks.append(current.strip())

    def _hard_split(self, text: str, chunks: List[str]) -> None:
        """Slice text into fixed windows advancing by chunk_size - overlap."""
        step = self.chunk_size - self.chunk_overlap
        for start in range(0, len(text), step):
            window = text[start:start + self.chunk_size].strip()
            if window:
                chunks.append(window)

    def _apply_overlap(self, chunks: List[str]) -> List[str]:
        """
        Prefix each chunk with the trailing overlap of the previous one.

        The prefix is shortened, never the chunk's own content, whenever the
        merged text would exceed max_chunk_length.
        """
        limit = self.max_chunk_length
        overlapped = [chunks[0]]

        for previous, chunk in zip(chunks, chunks[1:]):
            room = limit - len(chunk) - 1  # one space joins prefix and chunk
            suffix = previous[-self.chunk_overlap:]
            if room <= 0:
                suffix = ""
            elif len(suffix) > room:
                suffix = suffix[-room:]
            suffix = suffix.strip()

            overlapped.append(f"{suffix} {chunk}" if suffix else chunk)

        logger.debug(f"Applied {self.chunk_overlap}-char overlap to {len(chunks)} chunks")
        return overlapped
