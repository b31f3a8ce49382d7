# Overview: Pytest coverage for derived stock, movements and low-stock/history views.

import pytest

from stockroom.models import DeletedProduct
from stockroom.services import stock_service
from stockroom.services.products_service import delete_product
from stockroom.validation import ValidationError


class TestDerivedStock:
    def test_stock_is_inbound_minus_outbound(self, db_session, make_product):
        p = make_product(inbound=[10, 5], outbound=[3])
        assert stock_service.total_inbound(p) == 15
        assert stock_service.total_outbound(p) == 3
        assert stock_service.current_stock(p) == 12

    def test_missing_lists_count_as_zero(self):
        assert stock_service.current_stock({}) == 0
        assert stock_service.current_stock({"inbound_records": None, "outbound_records": [{"quantity": 2}]}) == -2

    def test_stock_can_go_negative(self, db_session, make_product):
        p = make_product(inbound=[1])
        result = stock_service.record_stock_movement(product_id=p.id, direction="out", quantity=4)
        assert result["stock"] == -3

    @pytest.mark.parametrize("stock,level", [(0, "critical"), (20, "critical"), (21, "low"), (50, "low"), (100, "moderate"), (101, "ample")])
    def test_stock_level_bands(self, stock, level):
        assert stock_service.stock_level(stock) == level

    @pytest.mark.parametrize("stock,status", [(0, "out_of_stock"), (-1, "reorder"), (20, "reorder"), (21, "normal")])
    def test_low_stock_status(self, stock, status):
        assert stock_service.low_stock_status(stock) == status


class TestMovements:
    def test_record_inbound_appends_record(self, db_session, make_product):
        p = make_product()
        result = stock_service.record_stock_movement(product_id=p.id, direction="in", quantity="7")

        assert result["stock"] == 7
        assert result["record"]["quantity"] == 7
        db_session.refresh(p)
        assert len(p.inbound_records) == 1
        assert p.inbound_records[0]["date"] == result["record"]["date"]

    def test_rejects_non_positive_quantity(self, db_session, make_product):
        p = make_product()
        with pytest.raises(ValidationError):
            stock_service.record_stock_movement(product_id=p.id, direction="in", quantity=0)

    def test_rejects_unknown_direction(self, db_session, make_product):
        p = make_product()
        with pytest.raises(ValidationError):
            stock_service.record_stock_movement(product_id=p.id, direction="sideways", quantity=1)

    def test_missing_product_returns_none(self, db_session):
        assert stock_service.record_stock_movement(product_id=999, direction="in", quantity=1) is None

    def test_void_moves_record_to_archive(self, db_session, make_product):
        p = make_product(inbound=[10, 4])
        result = stock_service.void_stock_record(product_id=p.id, direction="in", index=0)

        assert result["stock"] == 4
        assert result["voided"]["quantity"] == 10
        assert "voided_at" in result["voided"]
        db_session.refresh(p)
        assert [r["quantity"] for r in p.inbound_records] == [4]
        assert [r["quantity"] for r in p.voided_inbound_records] == [10]

    def test_void_index_out_of_range(self, db_session, make_product):
        p = make_product(outbound=[1])
        with pytest.raises(ValidationError):
            stock_service.void_stock_record(product_id=p.id, direction="out", index=3)


class TestLowStock:
    def test_filters_by_threshold(self, db_session, make_product):
        make_product(name="많음", inbound=[80])
        make_product(name="적음", inbound=[30], photos=["productImages/1_a.png", "productImages/2_b.png"])
        make_product(name="없음")

        result = stock_service.list_low_stock()

        assert result["threshold"] == 50
        assert [i["name"] for i in result["items"]] == ["적음", "없음"]
        low = result["items"][0]
        assert low["status"] == "normal"
        assert low["image_path"] == "productImages/2_b.png"
        assert result["items"][1]["status"] == "out_of_stock"

    def test_custom_threshold(self, db_session, make_product):
        make_product(inbound=[80])
        assert stock_service.list_low_stock(threshold=100)["count"] == 1


class TestHistory:
    def test_merges_live_and_deleted_products(self, db_session, make_product):
        live = make_product(name="현재", inbound=[5])
        gone = make_product(name="삭제됨", outbound=[2])
        delete_product(product_id=gone.id)

        result = stock_service.list_stock_history()
        assert result["count"] == 2
        # outbound dates (2026-01-03) sort after inbound dates (2026-01-02)
        first, second = result["items"]
        assert first["name"] == "삭제됨" and first["deleted"] is True
        assert first["deleted_at"] == db_session.query(DeletedProduct).one().deleted_at
        assert second["name"] == "현재" and second["direction"] == "in"
        assert second["id"] == f"{live.id}-in-0-active"

    def test_ascending_order(self, db_session, make_product):
        make_product(inbound=[1], outbound=[1])
        items = stock_service.list_stock_history(order="asc")["items"]
        assert [i["direction"] for i in items] == ["in", "out"]

    def test_bad_order(self, db_session):
        with pytest.raises(ValidationError):
            stock_service.list_stock_history(order="sideways")


class TestCandidates:
    def test_case_sensitive_substring_sorted_by_code(self, db_session, make_product):
        make_product(product_code="BS0002", name="Ring", raw_material="silver")
        make_product(product_code="BS0001", name="ring", raw_material="gold")
        make_product(product_code="BS0003", name="Bracelet", raw_material="silver")

        codes = [i["product_code"] for i in stock_service.list_stock_candidates(keyword="silver")["items"]]
        assert codes == ["BS0002", "BS0003"]

        codes = [i["product_code"] for i in stock_service.list_stock_candidates(keyword="ring")["items"]]
        assert codes == ["BS0001"]

        codes = [i["product_code"] for i in stock_service.list_stock_candidates(order="desc")["items"]]
        assert codes == ["BS0003", "BS0002", "BS0001"]
