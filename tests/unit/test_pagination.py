"""Tests for page arithmetic."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from loginspector.core.models import NO_PAGE, Page
from loginspector.core.pagination import (
    MAX_OFFSET,
    build_page,
    normalize_page_num,
    page_window,
)

pytestmark = [pytest.mark.unit, pytest.mark.tier(1)]


def _fetch(items: list[int], page_num: int, page_size: int) -> Page[int]:
    """Fetch a page window from an ordered list, as a LIMIT/OFFSET query does."""
    page_num = normalize_page_num(page_num)
    limit, offset = page_window(page_num, page_size)
    return build_page(items[offset : offset + limit], page_num, page_size)


class TestNormalizePageNum:
    """Tests for normalize_page_num()."""

    @pytest.mark.core
    @pytest.mark.parametrize("requested", [0, -1, -100])
    def test_pages_below_one_become_first_page(self, requested: int) -> None:
        """Page numbers below 1 are clamped to 1."""
        assert normalize_page_num(requested) == 1

    @pytest.mark.core
    def test_valid_page_is_unchanged(self) -> None:
        assert normalize_page_num(3) == 3


class TestPageWindow:
    """Tests for page_window()."""

    @pytest.mark.core
    def test_window_fetches_one_lookahead_row(self) -> None:
        """The limit covers the page plus one row proving a next page."""
        assert page_window(1, 10) == (11, 0)
        assert page_window(3, 10) == (11, 20)

    @pytest.mark.core
    def test_rejects_non_positive_page_size(self) -> None:
        with pytest.raises(ValueError, match="page_size"):
            page_window(1, 0)

    @pytest.mark.core
    def test_offset_limit_is_a_signed_64_bit_integer(self) -> None:
        """Offsets past MAX_OFFSET cannot be sent to the store."""
        assert MAX_OFFSET == 2**63 - 1
        _, offset = page_window(10**19, 20)
        assert offset > MAX_OFFSET


class TestBuildPage:
    """Tests for build_page()."""

    @pytest.mark.core
    def test_first_page_has_no_previous_page(self) -> None:
        page = build_page([1, 2], page_num=1, page_size=5)
        assert page.prev_page is NO_PAGE
        assert page.next_page is NO_PAGE
        assert page.curr_page == 1

    @pytest.mark.core
    def test_lookahead_row_sets_next_page_and_is_dropped(self) -> None:
        page = build_page([1, 2, 3], page_num=2, page_size=2)
        assert list(page.result_list) == [1, 2]
        assert page.prev_page == 1
        assert page.next_page == 3
        assert page.has_next
        assert page.has_prev

    @pytest.mark.core
    def test_empty_fetch_gives_empty_page_without_next(self) -> None:
        page = build_page([], page_num=4, page_size=2)
        assert list(page.result_list) == []
        assert page.next_page is NO_PAGE
        assert page.prev_page == 3


class TestFetchedPages:
    """Pages built the way the storage engines build them."""

    @pytest.mark.core
    def test_page_zero_behaves_like_page_one(self) -> None:
        items = list(range(7))
        assert _fetch(items, 0, 3) == _fetch(items, 1, 3)

    @pytest.mark.core
    def test_page_beyond_last_is_empty(self) -> None:
        page = _fetch(list(range(4)), 5, 2)
        assert list(page.result_list) == []
        assert page.next_page is NO_PAGE

    @pytest.mark.core
    @given(
        items=st.lists(st.integers(), max_size=60),
        page_size=st.integers(min_value=1, max_value=15),
    )
    def test_pages_partition_the_result_set(
        self, items: list[int], page_size: int
    ) -> None:
        """Concatenating pages 1..N yields every item once, in order."""
        collected: list[int] = []
        page_num = 1
        while True:
            page = _fetch(items, page_num, page_size)
            assert len(page.result_list) <= page_size
            collected.extend(page.result_list)
            if page.next_page is NO_PAGE:
                break
            page_num = page.next_page
        assert collected == items

    @pytest.mark.core
    @given(
        count=st.integers(min_value=0, max_value=50),
        page_size=st.integers(min_value=1, max_value=10),
        page_num=st.integers(min_value=-5, max_value=12),
    )
    def test_next_page_exists_only_when_items_remain(
        self, count: int, page_size: int, page_num: int
    ) -> None:
        page = _fetch(list(range(count)), page_num, page_size)
        remaining = count - page.curr_page * page_size
        assert page.has_next == (remaining > 0)
