"""
Base vectorizer interface.
"""

from abc import abstractmethod
from typing import Any, Callable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vecsearch.config.settings import settings
from vecsearch.models.fields import VectorDataType
from vecsearch.utils.array_utils import array_to_buffer, to_float_list
from vecsearch.utils.logger import get_logger

logger = get_logger(__name__)

Embedding = Union[List[float], bytes]


class BaseVectorizer(BaseModel):
    """
    Turns text into fixed-length embeddings.

    Subclasses implement ``_embed`` and may override ``_embed_many`` when the
    backing model can encode several texts in one call.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    model: str
    dims: Optional[int] = Field(default=None, gt=0)
    dtype: VectorDataType = VectorDataType.FLOAT32
    # EmbeddingsCache consulted before calling the model
    cache: Optional[Any] = Field(default=None, exclude=True)

    @field_validator('dtype', mode='before')
    @classmethod
    def case_insensitive_dtype(cls, v):
        return v.lower() if isinstance(v, str) else v

    @abstractmethod
    def _embed(self, text: str) -> List[float]:
        """Embed a single text."""
        ...

    def _embed_many(self, texts: List[str]) -> List[List[float]]:
        return [self._embed(text) for text in texts]

    def _finish(self, embedding, as_buffer: bool) -> Embedding:
        values = to_float_list(embedding)
        if self.dims is not None and len(values) != self.dims:
            raise ValueError(
                f"Model '{self.model}' returned {len(values)} dimensions, expected {self.dims}"
            )
        if as_buffer:
            return array_to_buffer(values, self.dtype.value)
        return values

    def _use_cache(self, skip_cache: bool) -> bool:
        return self.cache is not None and not skip_cache

    def embed(
        self,
        text: str,
        preprocess: Optional[Callable[[str], str]] = None,
        as_buffer: bool = False,
        skip_cache: bool = False
    ) -> Embedding:
        """
        Embed one text.

        Args:
            text: Text to embed
            preprocess: Optional transform applied to the text first
            as_buffer: Return the little-endian byte buffer instead of floats
            skip_cache: Bypass the embeddings cache for this call

        Returns:
            Embedding as a list of floats or bytes
        """
        if not isinstance(text, str):
            raise TypeError("Text must be a string")
        if preprocess is not None:
            text = preprocess(text)

        if self._use_cache(skip_cache):
            entry = self.cache.get(text, self.model)
            if entry is not None:
                return self._finish(entry.embedding, as_buffer)

        values = self._finish(self._embed(text), False)
        if self._use_cache(skip_cache):
            self.cache.set(text, self.model, values)
        return array_to_buffer(values, self.dtype.value) if as_buffer else values

    def embed_batch(
        self,
        texts: List[str],
        preprocess: Optional[Callable[[str], str]] = None,
        batch_size: Optional[int] = None,
        as_buffer: bool = False,
        skip_cache: bool = False
    ) -> List[Embedding]:
        """
        Embed many texts, ``batch_size`` at a time, preserving order.

        With a cache attached only the texts missing from it reach the model.

        Args:
            texts: Texts to embed
            preprocess: Optional transform applied to each text first
            batch_size: Texts per model call
            as_buffer: Return byte buffers instead of float lists
            skip_cache: Bypass the embeddings cache for this call

        Returns:
            One embedding per input text
        """
        if not isinstance(texts, list) or not all(isinstance(t, str) for t in texts):
            raise TypeError("Texts must be a list of strings")
        if preprocess is not None:
            texts = [preprocess(text) for text in texts]
        batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE

        embeddings: List[Optional[List[float]]] = [None] * len(texts)
        if self._use_cache(skip_cache) and texts:
            for i, entry in enumerate(self.cache.mget(texts, self.model)):
                if entry is not None:
                    embeddings[i] = self._finish(entry.embedding, False)
        missing = [i for i, embedding in enumerate(embeddings) if embedding is None]

        for start in range(0, len(missing), batch_size):
            positions = missing[start:start + batch_size]
            batch = [texts[i] for i in positions]
            logger.debug(f"Embedding batch of {len(batch)} texts with '{self.model}'")
            for i, embedding in zip(positions, self._embed_many(batch)):
                embeddings[i] = self._finish(embedding, False)

        if self._use_cache(skip_cache) and missing:
            self.cache.mset([
                {"text": texts[i], "model_name": self.model, "embedding": embeddings[i]}
                for i in missing
            ])
        if as_buffer:
            return [array_to_buffer(values, self.dtype.value) for values in embeddings]
        return embeddings
