"""
Vectorizer wrapping user-supplied embedding callables.
"""

from typing import Any, Callable, List, Optional

from pydantic import PrivateAttr

from .base import BaseVectorizer, logger


class CustomVectorizer(BaseVectorizer):
    """
    Vectorizer backed by plain functions.

    Example:
        vectorizer = CustomVectorizer(embed=lambda text: model.encode(text).tolist())
    """

    model: str = "custom"

    _embed_func: Callable[[str], Any] = PrivateAttr()
    _embed_many_func: Optional[Callable[[List[str]], Any]] = PrivateAttr(default=None)

    def __init__(
        self,
        embed: Callable[[str], Any],
        embed_many: Optional[Callable[[List[str]], Any]] = None,
        **kwargs
    ):
        """
        Initialize the vectorizer.

        Args:
            embed: Function mapping one text to an embedding
            embed_many: Optional function mapping a list of texts to embeddings
            **kwargs: ``model``, ``dims`` and ``dtype``

        Raises:
            TypeError: If the functions are not callable or return non-vectors
        """
        if not callable(embed):
            raise TypeError("embed must be callable")
        if embed_many is not None and not callable(embed_many):
            raise TypeError("embed_many must be callable")
        super().__init__(**kwargs)
        self._embed_func = embed
        self._embed_many_func = embed_many

        if self.dims is None:
            self.dims = len(self._embed("dimension check"))
            logger.debug(f"Inferred {self.dims} dimensions for custom vectorizer")

    def _embed(self, text: str) -> List[float]:
        result = self._embed_func(text)
        if isinstance(result, (str, bytes)) or not hasattr(result, "__len__"):
            raise TypeError("embed must return a sequence of floats")
        return list(result)

    def _embed_many(self, texts: List[str]) -> List[List[float]]:
        if self._embed_many_func is None:
            return super()._embed_many(texts)
        results = list(self._embed_many_func(texts))
        if len(results) != len(texts):
            raise TypeError("embed_many must return one embedding per text")
        return results
