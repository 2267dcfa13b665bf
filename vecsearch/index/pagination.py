"""
Client-side offset pagination over a query.

There is no server-side cursor: each page re-issues the query with a new
offset window, so writes to the same key range between pages can cause
rows to be skipped or repeated.
"""

from typing import Any, Dict, Iterator, List, Optional

from vecsearch.query.base import BaseQuery
from vecsearch.utils.logger import LoggerMixin


class QueryPaginator(LoggerMixin):
    """
    Lazy sequence of result pages for one query.

    Usage:
        paginator = index.paginate(FilterQuery(filter_expression=f), page_size=50)
        while paginator.has_next():
            page = paginator.next_page()
    """

    def __init__(self, index: Any, query: BaseQuery, page_size: int = 30):
        if not isinstance(page_size, int) or page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        if not isinstance(query, BaseQuery):
            raise TypeError("Only search queries can be paginated")
        self.index = index
        self.query = query
        self.page_size = page_size
        self._offset = query.offset
        self._exhausted = False
        self._buffered: Optional[List[Dict[str, Any]]] = None

    def _fetch(self) -> List[Dict[str, Any]]:
        page_query = self.query.paginate(self._offset, self.page_size)
        self.logger.debug(f"Fetching page at offset {self._offset} (size {self.page_size})")
        return self.index.query(page_query)

    def has_next(self) -> bool:
        """Whether another non-empty page is available. May issue one query."""
        if self._exhausted:
            return False
        if self._buffered is None:
            self._buffered = self._fetch()
        if not self._buffered:
            self._exhausted = True
            return False
        return True

    def next_page(self) -> List[Dict[str, Any]]:
        """
        Return the next page.

        Raises:
            StopIteration: When no pages remain
        """
        if not self.has_next():
            raise StopIteration
        page = self._buffered
        self._buffered = None
        self._offset += len(page)
        if len(page) < self.page_size:
            self._exhausted = True
        return page

    def __iter__(self) -> Iterator[List[Dict[str, Any]]]:
        return self

    def __next__(self) -> List[Dict[str, Any]]:
        return self.next_page()

    def all(self) -> List[Dict[str, Any]]:
        """Drain every remaining page into one ordered list."""
        rows: List[Dict[str, Any]] = []
        for page in self:
            rows.extend(page)
        return rows
