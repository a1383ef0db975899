"""Page window over the sorter's ordered view.

Pages are numbered from 1. A negative page size means "one page holding
everything". The page number is clamped whenever the view shrinks, and
every derived value is recomputed on each ``sort.view_changed``.
"""

from __future__ import annotations

import math

from recordview.core.errors import InvalidOptionsError
from recordview.core.events import Event, EventBus
from recordview.core.logging import get_logger
from recordview.core.records import IdentifiedRecord
from recordview.core.settings import RecordViewSettings, get_settings
from recordview.core.view import RecordView, same_sequence

__all__ = ["Paginator", "UNBOUNDED"]

logger = get_logger(__name__)

UNBOUNDED = -1


class Paginator:
    """Slices the view into pages and reports changes on ``page.*``.

    Example::

        paginator = Paginator(view, bus, page_size=2)
        paginator.page_count     # ceil(len(view) / 2)
        paginator.next_page()
        paginator.items          # records on page 2
    """

    def __init__(
        self,
        view: RecordView,
        bus: EventBus,
        *,
        page_size: int | None = None,
        settings: RecordViewSettings | None = None,
    ) -> None:
        self._view = view
        self._bus = bus
        settings = settings or get_settings()
        self._page_size = self._check_size(settings.default_page_size if page_size is None else page_size)
        self._page_number = 1
        self._page_count = self._count_pages()
        self._items = self._slice()
        self._subscription = bus.subscribe("sort.view_changed", self._on_view_changed)

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def page_number(self) -> int:
        return self._page_number

    @property
    def page_index(self) -> int:
        return self._page_number - 1

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def items(self) -> list[IdentifiedRecord]:
        return list(self._items)

    # ── Setters ──────────────────────────────────────────────────────────

    def set_page_number(self, page_number: int) -> int:
        """Move to a page, clamped to the existing pages. Returns the page now shown."""
        self._refresh(requested_page=page_number)
        return self._page_number

    def next_page(self) -> int:
        return self.set_page_number(self._page_number + 1)

    def previous_page(self) -> int:
        return self.set_page_number(self._page_number - 1)

    def set_page_size(self, page_size: int) -> None:
        size = self._check_size(page_size)
        if size == self._page_size:
            return
        self._page_size = size
        logger.debug("page_size_changed", page_size=size)
        self._bus.emit("page.size_changed", "paginator", page_size=size)
        self._refresh()

    # ── Internals ────────────────────────────────────────────────────────

    @staticmethod
    def _check_size(page_size: int) -> int:
        if page_size == 0:
            raise InvalidOptionsError("page size must not be 0", field="page_size", value=page_size)
        return UNBOUNDED if page_size < 0 else page_size

    def _count_pages(self) -> int:
        total = len(self._view)
        if self._page_size == UNBOUNDED:
            return 1 if total else 0
        return math.ceil(total / self._page_size)

    def _slice(self) -> list[IdentifiedRecord]:
        if self._page_size == UNBOUNDED:
            return self._view.snapshot()
        start = self.page_index * self._page_size
        return self._view[start:start + self._page_size]

    def _refresh(self, requested_page: int | None = None) -> None:
        count = self._count_pages()
        wanted = self._page_number if requested_page is None else requested_page
        number = max(1, min(wanted, count or 1))

        count_changed = count != self._page_count
        number_changed = number != self._page_number
        self._page_count = count
        self._page_number = number
        items = self._slice()
        items_changed = not same_sequence(items, self._items)
        self._items = items

        if count_changed:
            self._bus.emit("page.count_changed", "paginator", page_count=count)
        if number_changed:
            self._bus.emit("page.number_changed", "paginator", page_number=number)
        if items_changed:
            self._bus.emit("page.items_changed", "paginator", items=list(items))

    def _on_view_changed(self, event: Event) -> None:
        self._refresh()

    def close(self) -> None:
        self._bus.unsubscribe(self._subscription)
