"""Text vectorizers."""

from .base import BaseVectorizer
from .custom import CustomVectorizer
from .huggingface import HFTextVectorizer

__all__ = ["BaseVectorizer", "CustomVectorizer", "HFTextVectorizer"]
