# Overview: Pytest coverage for catalog listing, numbering, price history and soft delete.

import pytest

from stockroom.models import DeletedProduct, Product
from stockroom.services import products_service
from stockroom.validation import ConflictError, ValidationError


def _codes(result):
    return [item["product_code"] for item in result["items"]]


class TestListProducts:
    def test_keyword_matches_name_code_or_brand(self, db_session, make_product):
        make_product(product_code="BS0001", name="Lotus Bracelet", brand="Alpha")
        make_product(product_code="BS0002", name="Ring", brand="Lotus Works")
        make_product(product_code="XX0003", name="Pin", brand="Beta")

        assert _codes(products_service.list_products(keyword="  lotus ")) == ["BS0001", "BS0002"]
        assert _codes(products_service.list_products(keyword="xx00")) == ["XX0003"]
        assert len(products_service.list_products(keyword="")["items"]) == 3

    def test_exact_filters(self, db_session, make_product):
        make_product(product_code="A1", category1="팔찌", category2="염주", brand="B1")
        make_product(product_code="A2", category1="팔찌", category2="단주", brand="B2")
        make_product(product_code="A3", category1="목걸이", category2="염주", brand="B1")

        assert _codes(products_service.list_products(category1="팔찌")) == ["A1", "A2"]
        assert _codes(products_service.list_products(category1="팔찌", category2="염주")) == ["A1"]
        assert _codes(products_service.list_products(brand="B1")) == ["A1", "A3"]

    def test_sort_by_seq_no_numeric(self, db_session, make_product):
        make_product(product_code="C", seq_no=10)
        make_product(product_code="A", seq_no=9)
        make_product(product_code="B", seq_no=100)

        assert _codes(products_service.list_products()) == ["A", "C", "B"]
        assert _codes(products_service.list_products(sort_order="desc")) == ["B", "C", "A"]

    def test_numeric_strings_compare_numerically(self, db_session, make_product):
        make_product(product_code="10", seq_no=1)
        make_product(product_code="9", seq_no=2)
        make_product(product_code="BS0001", seq_no=3)

        # "9" < "10" numerically; "BS0001" vs a number compares as strings
        assert _codes(products_service.list_products(sort_key="product_code")) == ["9", "10", "BS0001"]

    def test_sort_by_name(self, db_session, make_product):
        make_product(product_code="P1", name="다")
        make_product(product_code="P2", name="가")
        make_product(product_code="P3", name="나")
        assert _codes(products_service.list_products(sort_key="name")) == ["P2", "P3", "P1"]

    def test_rejects_unknown_sort_key(self, db_session):
        with pytest.raises(ValidationError):
            products_service.list_products(sort_key="price")

    def test_pagination(self, db_session, make_product):
        for _ in range(5):
            make_product()

        result = products_service.list_products(page=2, per_page=2)
        assert _codes(result) == ["BS0003", "BS0004"]
        assert result["pagination"] == {
            "page": 2,
            "per_page": 2,
            "total": 5,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    def test_default_page_size(self, db_session, make_product, app):
        make_product()
        result = products_service.list_products(page=1)
        assert result["pagination"]["per_page"] == app.config["PRODUCT_PAGE_SIZE"] == 700

    def test_payload_has_derived_fields(self, db_session, make_product):
        make_product(
            product_code="BS0007",
            name="연꽃",
            seq_no=7,
            category2="팔찌",
            bead_size="8mm",
            inbound=[30],
            outbound=[5],
            costs=[1000, 1200],
            wholesale=[2000],
            photos=["productImages/1_x.png"],
        )
        item = products_service.list_products()["items"][0]

        assert item["seq_label"] == "007"
        assert item["display_name"] == "BS0007_연꽃_팔찌_8mm"
        assert item["stock"] == 25
        assert item["total_in"] == 30
        assert item["total_out"] == 5
        assert item["stock_level"] == "low"
        assert item["latest_cost"] == 1200
        assert item["latest_wholesale_price"] == 2000
        assert item["latest_sale_price"] is None
        assert item["latest_photo_path"] == "productImages/1_x.png"


class TestFacetsAndNumbering:
    def test_facets_are_distinct_and_sorted(self, db_session, make_product):
        make_product(brand="B", category1="팔찌")
        make_product(brand="A", category1="팔찌", category2="염주")
        make_product(brand="B")

        assert products_service.list_facets() == {
            "brands": ["A", "B"],
            "category1": ["팔찌"],
            "category2": ["염주"],
        }

    def test_next_seq_no(self, db_session, make_product):
        assert products_service.next_seq_no() == 1
        make_product(seq_no=41)
        assert products_service.next_seq_no() == 42

    def test_next_product_code(self, db_session, make_product):
        assert products_service.next_product_code() == "BS0001"
        make_product(product_code="BS0009")
        make_product(product_code="BS0012-A")
        make_product(product_code="XY9999")
        make_product(product_code="BSX")
        assert products_service.next_product_code() == "BS0013"


class TestCreateUpdate:
    def test_create_assigns_numbers_and_histories(self, db_session, make_product):
        make_product(product_code="BS0004", seq_no=4)

        created = products_service.create_product(
            patch={"name": "새 상품"},
            cost=1000,
            wholesale_price="2,000",
            sale_price=3000,
            initial_stock=12,
            brands=["Beta", "Alpha", " Beta "],
        )

        assert created["product_code"] == "BS0005"
        assert created["seq_no"] == 5
        assert created["brand"] == "Alpha, Beta"
        assert [e["amount"] for e in created["cost_history"]] == [1000]
        assert [e["amount"] for e in created["wholesale_price_history"]] == [2000]
        assert created["stock"] == 12
        assert created["photo_history"] == []

    def test_join_brands_case_insensitive(self):
        assert products_service.join_brands(["Zeta", " alpha", "Zeta", "", "베타"]) == "alpha, Zeta, 베타"

    def test_create_duplicate_code_conflicts(self, db_session, make_product):
        make_product(product_code="BS0001")
        with pytest.raises(ConflictError):
            products_service.create_product(patch={"product_code": "BS0001", "name": "dup"})

    def test_update_appends_only_changed_prices(self, db_session, make_product):
        p = make_product(costs=[1000], wholesale=[2000])

        updated = products_service.update_product(
            product_id=p.id,
            patch={"memo": "메모"},
            cost=1000,
            wholesale_price=2500,
            inbound_quantity=3,
            outbound_quantity=0,
        )

        assert updated["memo"] == "메모"
        assert [e["amount"] for e in updated["cost_history"]] == [1000]
        assert [e["amount"] for e in updated["wholesale_price_history"]] == [2000, 2500]
        assert [r["quantity"] for r in updated["inbound_records"]] == [3]
        assert updated["outbound_records"] == []

    def test_update_missing_returns_none(self, db_session):
        assert products_service.update_product(product_id=404, patch={"name": "x"}) is None

    def test_update_code_conflict(self, db_session, make_product):
        make_product(product_code="BS0001")
        p = make_product(product_code="BS0002")
        with pytest.raises(ConflictError):
            products_service.update_product(product_id=p.id, patch={"product_code": "BS0001"})

    def test_bulk_update_price(self, db_session, make_product):
        a = make_product(sales=[100])
        b = make_product()

        result = products_service.bulk_update_price(product_ids=[a.id, b.id, 999], field="sale", value=500)

        assert result["updated"] == 2
        assert result["missing_ids"] == [999]
        db_session.expire_all()
        assert [e["amount"] for e in db_session.get(Product, a.id).sale_price_history] == [100, 500]
        assert [e["amount"] for e in db_session.get(Product, b.id).sale_price_history] == [500]

    def test_bulk_update_price_rejects_unknown_field(self, db_session, make_product):
        p = make_product()
        with pytest.raises(ValidationError):
            products_service.bulk_update_price(product_ids=[p.id], field="retail", value=1)


class TestSoftDelete:
    def test_delete_archives_document(self, db_session, make_product):
        p = make_product(product_code="BS0003", inbound=[4])
        pid = p.id

        assert products_service.delete_product(product_id=pid) is True

        assert db_session.get(Product, pid) is None
        archived = db_session.query(DeletedProduct).one()
        assert archived.original_id == pid
        assert archived.product_code == "BS0003"
        assert archived.document["inbound_records"][0]["quantity"] == 4
        assert len(archived.deleted_at) == 19

    def test_delete_missing(self, db_session):
        assert products_service.delete_product(product_id=1) is False

    def test_bulk_delete(self, db_session, make_product):
        a = make_product()
        b = make_product()
        make_product()

        result = products_service.bulk_delete_products(product_ids=[a.id, b.id, 77])

        assert result == {"deleted": 2, "missing_ids": [77]}
        assert db_session.query(Product).count() == 1
        assert db_session.query(DeletedProduct).count() == 2
        assert products_service.list_deleted_products()["count"] == 2
