"""
Unit tests for item filtering and pagination.
"""
import pytest

from backend.app.services.listing import filter_items, is_low_stock, paginate

pytestmark = pytest.mark.unit


class TestFilterItems:
    def test_no_filters_returns_everything(self, sample_items):
        assert filter_items(sample_items) == sample_items

    def test_search_matches_name_description_sku_barcode(self, sample_items):
        assert [i["id"] for i in filter_items(sample_items, search="beans")] == ["i1", "i4"]
        assert [i["id"] for i in filter_items(sample_items, search="barista")] == ["i2"]
        assert [i["id"] for i in filter_items(sample_items, search="cup-12")] == ["i3"]
        assert [i["id"] for i in filter_items(sample_items, search="333948")] == ["i4"]

    def test_search_tolerates_missing_fields(self, sample_items):
        assert filter_items(sample_items, search="nothing-like-this") == []

    def test_category_filter(self, sample_items):
        assert [i["id"] for i in filter_items(sample_items, category_id="c1")] == ["i1", "i4"]

    def test_low_stock_uses_item_threshold_then_default(self, sample_items):
        # i1: 4 <= 5; i3: 10 <= default 10
        assert [i["id"] for i in filter_items(sample_items, low_stock_only=True)] == ["i1", "i3"]

    def test_filters_combine(self, sample_items):
        result = filter_items(sample_items, search="beans", category_id="c1", low_stock_only=True)
        assert [i["id"] for i in result] == ["i1"]

    def test_is_low_stock_treats_missing_quantity_as_zero(self):
        assert is_low_stock({"id": "x"}) is True


class TestPaginate:
    def test_basic_page(self):
        data = [{"n": n} for n in range(45)]
        page = paginate(data, page=2, per_page=20)

        assert page.current_page == 2
        assert page.total_pages == 3
        assert page.items == data[20:40]
        assert page.start_index == 21
        assert page.end_index == 40
        assert page.has_next_page and page.has_prev_page
        assert page.total_items == 45

    def test_last_page_is_partial(self):
        page = paginate([{"n": n} for n in range(45)], page=3, per_page=20)

        assert len(page.items) == 5
        assert page.end_index == 45
        assert not page.has_next_page

    def test_page_is_clamped(self):
        data = [{"n": n} for n in range(10)]

        assert paginate(data, page=99, per_page=4).current_page == 3
        assert paginate(data, page=0, per_page=4).current_page == 1

    def test_empty_data(self):
        page = paginate([], page=3, per_page=10)

        assert page.current_page == 1
        assert page.total_pages == 0
        assert page.items == []
        assert page.start_index == 0
        assert not page.has_next_page and not page.has_prev_page

    def test_default_page_size(self):
        page = paginate([{"n": n} for n in range(30)])
        assert page.items_per_page == 25

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            paginate([{"n": 1}], per_page=-1)

    def test_as_dict_includes_flags(self):
        d = paginate([{"n": 1}], per_page=10).as_dict()
        assert d["has_next_page"] is False
        assert d["items"] == [{"n": 1}]
