from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from .schema import ALL, ArrivalRecord, ArrivalStatus
from .workflow import DISPLAY_PRIORITY

PAGE_SIZE = 10
PREVIEW_LIMIT = 2

COUNTER_FILTERS: Dict[str, str] = {
    "total": ALL,
    "delivered": ArrivalStatus.delivered.value,
    "fixing": ArrivalStatus.fixing.value,
    "ready": ArrivalStatus.ready.value,
}


class ArrivalQuery(BaseModel):
    search: str = ""
    make: str = ALL
    model: str = ALL
    status: str = ALL


class Page(BaseModel):
    items: List[ArrivalRecord]
    page: int
    total_pages: int
    total_items: int


class SummaryCounters(BaseModel):
    total: int = 0
    delivered: int = 0
    fixing: int = 0
    ready: int = 0


class PreviewList(BaseModel):
    items: List[ArrivalRecord] = Field(default_factory=list)
    total: int = 0
    overflow: int = 0


def filter_arrivals(records: Iterable[ArrivalRecord], query: ArrivalQuery) -> List[ArrivalRecord]:
    term = query.search.lower()

    def matches(record: ArrivalRecord) -> bool:
        if term not in f"{record.vin} {record.lot_number}".lower():
            return False
        if query.make != ALL and record.make != query.make:
            return False
        # The model filter only applies under a make filter.
        if query.make != ALL and query.model != ALL and record.model != query.model:
            return False
        if query.status != ALL and record.status.value != query.status:
            return False
        return True

    return [record for record in records if matches(record)]


def sort_by_display_priority(records: Iterable[ArrivalRecord]) -> List[ArrivalRecord]:
    return sorted(records, key=lambda record: DISPLAY_PRIORITY[record.status])


def search_arrivals(records: Iterable[ArrivalRecord], query: ArrivalQuery) -> List[ArrivalRecord]:
    return sort_by_display_priority(filter_arrivals(records, query))


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def paginate(items: List[ArrivalRecord], page: int = 1, page_size: int = PAGE_SIZE) -> Page:
    pages = total_pages(len(items), page_size)
    page = max(1, page)
    start = (page - 1) * page_size
    return Page(
        items=items[start:start + page_size],
        page=page,
        total_pages=pages,
        total_items=len(items),
    )


def page_buttons(current: int, total: int) -> List[Optional[int]]:
    """Page numbers to render, with None standing for an ellipsis.

    Up to five pages are all shown. Beyond that only the first and last
    page and a window of two either side of the current page remain.
    """
    buttons: List[Optional[int]] = []
    for number in range(1, total + 1):
        if total > 5 and abs(number - current) > 2 and number not in (1, total):
            if number in (current - 3, current + 3):
                buttons.append(None)
            continue
        buttons.append(number)
    return buttons


def summarize(records: Iterable[ArrivalRecord]) -> SummaryCounters:
    records = list(records)
    return SummaryCounters(
        total=len(records),
        delivered=sum(1 for r in records if r.status == ArrivalStatus.delivered),
        fixing=sum(1 for r in records if r.status == ArrivalStatus.fixing),
        ready=sum(1 for r in records if r.status == ArrivalStatus.ready),
    )


def _preview(records: List[ArrivalRecord], limit: int) -> PreviewList:
    return PreviewList(
        items=records[:limit],
        total=len(records),
        overflow=max(0, len(records) - limit),
    )


def pending_pickups(records: Iterable[ArrivalRecord], limit: int = PREVIEW_LIMIT) -> PreviewList:
    return _preview([r for r in records if r.status == ArrivalStatus.paid], limit)


def pending_deliveries(records: Iterable[ArrivalRecord], limit: int = PREVIEW_LIMIT) -> PreviewList:
    return _preview([r for r in records if r.status == ArrivalStatus.picked_up], limit)


class DispatchBoard:
    """Filter and page state of the dispatch list.

    Any filter change sends the operator back to page 1.
    """

    def __init__(self, page_size: int = PAGE_SIZE):
        self.query = ArrivalQuery()
        self.page = 1
        self.page_size = page_size

    def set_filters(self, **changes) -> ArrivalQuery:
        data = self.query.model_dump()
        if "make" in changes and changes["make"] != data["make"]:
            data["model"] = ALL
        data.update(changes)
        updated = ArrivalQuery.model_validate(data)
        if updated != self.query:
            self.page = 1
        self.query = updated
        return self.query

    def apply_counter(self, counter: str) -> ArrivalQuery:
        return self.set_filters(status=COUNTER_FILTERS[counter])

    def last_page(self, records: Iterable[ArrivalRecord]) -> int:
        return max(1, total_pages(len(self.results(records)), self.page_size))

    def go_to(self, page: int, records: Optional[Iterable[ArrivalRecord]] = None) -> int:
        if records is not None:
            page = min(page, self.last_page(records))
        self.page = max(1, page)
        return self.page

    def results(self, records: Iterable[ArrivalRecord]) -> List[ArrivalRecord]:
        return search_arrivals(records, self.query)

    def current_page(self, records: Iterable[ArrivalRecord]) -> Page:
        results = self.results(records)
        self.page = min(self.page, max(1, total_pages(len(results), self.page_size)))
        return paginate(results, self.page, self.page_size)

    def buttons(self, records: Iterable[ArrivalRecord]) -> List[Optional[int]]:
        results = self.results(records)
        return page_buttons(self.page, total_pages(len(results), self.page_size))
