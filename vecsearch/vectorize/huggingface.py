"""
Sentence-transformers text vectorizer.
"""

from typing import Any, List

from pydantic import Field, PrivateAttr

from vecsearch.config.settings import settings
from .base import BaseVectorizer, logger


class HFTextVectorizer(BaseVectorizer):
    """Embeds text locally with a sentence-transformers model."""

    model: str = Field(default_factory=lambda: settings.EMBEDDING_MODEL)

    _client: Any = PrivateAttr(default=None)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError:
            logger.error(
                "sentence-transformers package not found. "
                "Please install it using: pip install vecsearch[hf]"
            )
            raise

        logger.info(f"Loading embedding model: {self.model}")
        self._client = SentenceTransformer(self.model)
        logger.info("Embedding model loaded successfully")

        if self.dims is None:
            self.dims = (
                self._client.get_sentence_embedding_dimension()
                or len(self._embed("dimension check"))
            )

    def _embed(self, text: str) -> List[float]:
        return self._client.encode(text, convert_to_numpy=True).tolist()

    def _embed_many(self, texts: List[str]) -> List[List[float]]:
        embeddings = self._client.encode(
            texts,
            convert_to_numpy=True,
            show_progress_bar=False
        )
        return [embedding.tolist() for embedding in embeddings]
