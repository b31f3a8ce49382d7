# Overview: Pytest coverage for the HTTP surface: status codes and error shapes.

from stockroom.models import DeletedProduct


class TestSystem:
    def test_health(self, db_session, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["details"]["products"] == 0

    def test_cors_allowed_origin(self, db_session, client):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_cors_other_origin(self, db_session, client):
        resp = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


class TestProductRoutes:
    def test_create_json(self, db_session, client):
        resp = client.post("/api/products", json={
            "name": "연꽃",
            "category1": "팔찌",
            "cost": 1000,
            "wholesale_price": 1500,
            "sale_price": 3000,
            "initial_stock": 20,
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["product_code"] == "BS0001"
        assert body["seq_no"] == 1
        assert body["stock"] == 20

    def test_create_requires_name(self, db_session, client):
        resp = client.post("/api/products", json={"category1": "팔찌"})
        assert resp.status_code == 400
        assert "name" in resp.get_json()["error"]

    def test_create_rejects_unknown_field(self, db_session, client):
        resp = client.post("/api/products", json={"name": "x", "stock": 5})
        assert resp.status_code == 400

    def test_create_rejects_negative_price(self, db_session, client):
        resp = client.post("/api/products", json={"name": "x", "cost": -1})
        assert resp.status_code == 400

    def test_create_duplicate_code_409(self, db_session, client, make_product):
        make_product(product_code="BS0001")
        resp = client.post("/api/products", json={"name": "x", "product_code": "BS0001"})
        assert resp.status_code == 409

    def test_code_with_whitespace_400(self, db_session, client):
        resp = client.post("/api/products", json={"name": "x", "product_code": "BS 01"})
        assert resp.status_code == 400

    def test_list_and_filters(self, db_session, client, make_product):
        make_product(name="연꽃", brand="A")
        make_product(name="단주", brand="B")

        resp = client.get("/api/products", query_string={"brand": "B"})
        assert resp.status_code == 200
        assert [p["name"] for p in resp.get_json()["items"]] == ["단주"]

        resp = client.get("/api/products", query_string={"page": 1, "per_page": 1})
        assert resp.get_json()["pagination"]["total_pages"] == 2

        resp = client.get("/api/products", query_string={"sort_key": "bogus"})
        assert resp.status_code == 400

    def test_facets_and_next_code(self, db_session, client, make_product):
        make_product(product_code="BS0041", seq_no=41, brand="A")

        assert client.get("/api/products/facets").get_json()["brands"] == ["A"]
        assert client.get("/api/products/next-code").get_json() == {"product_code": "BS0042", "seq_no": 42}

    def test_get_update_delete(self, db_session, client, make_product):
        p = make_product(wholesale=[1000])

        assert client.get(f"/api/products/{p.id}").status_code == 200
        assert client.get("/api/products/9999").status_code == 404

        resp = client.put(f"/api/products/{p.id}", json={"memo": "수정", "wholesale_price": 1200, "outbound_quantity": 2})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["memo"] == "수정"
        assert body["latest_wholesale_price"] == 1200
        assert body["stock"] == -2

        assert client.delete(f"/api/products/{p.id}").status_code == 200
        assert client.delete(f"/api/products/{p.id}").status_code == 404
        assert db_session.query(DeletedProduct).count() == 1
        assert client.get("/api/products/deleted").get_json()["count"] == 1

    def test_update_missing_404(self, db_session, client):
        assert client.put("/api/products/12345", json={"memo": "x"}).status_code == 404

    def test_bulk_routes(self, db_session, client, make_product):
        a = make_product()
        b = make_product()

        resp = client.post("/api/products/bulk-price", json={"product_ids": [a.id, b.id], "field": "cost", "value": 700})
        assert resp.status_code == 200
        assert resp.get_json()["updated"] == 2

        resp = client.post("/api/products/bulk-price", json={"product_ids": [a.id], "field": "cost", "value": "abc"})
        assert resp.status_code == 400

        resp = client.post("/api/products/bulk-delete", json={"product_ids": []})
        assert resp.status_code == 400

        resp = client.post("/api/products/bulk-delete", json={"product_ids": [a.id, b.id]})
        assert resp.get_json() == {"deleted": 2, "missing_ids": []}


class TestStockRoutes:
    def test_movement_and_void(self, db_session, client, make_product):
        p = make_product()

        resp = client.post("/api/stock/movements", json={"product_id": p.id, "direction": "in", "quantity": 9})
        assert resp.status_code == 201
        assert resp.get_json()["stock"] == 9

        resp = client.delete(f"/api/stock/{p.id}/in/0")
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 0

        assert client.delete(f"/api/stock/{p.id}/in/0").status_code == 400

    def test_movement_errors(self, db_session, client, make_product):
        p = make_product()
        assert client.post("/api/stock/movements", json={"direction": "in", "quantity": 1}).status_code == 400
        assert client.post("/api/stock/movements", json={"product_id": p.id, "direction": "in", "quantity": -1}).status_code == 400
        assert client.post("/api/stock/movements", json={"product_id": 999, "direction": "in", "quantity": 1}).status_code == 404

    def test_views(self, db_session, client, make_product):
        make_product(name="재고없음")
        make_product(name="충분", inbound=[100], raw_material="은")

        low = client.get("/api/stock/low").get_json()
        assert [i["name"] for i in low["items"]] == ["재고없음"]

        assert client.get("/api/stock/history").get_json()["count"] == 1
        assert client.get("/api/stock/history", query_string={"order": "x"}).status_code == 400

        candidates = client.get("/api/stock/candidates", query_string={"keyword": "은"}).get_json()
        assert [i["name"] for i in candidates["items"]] == ["충분"]


class TestCli:
    def test_low_stock_command(self, db_session, app, make_product):
        make_product(name="부족", inbound=[3])
        result = app.test_cli_runner().invoke(args=["stock", "low", "--threshold", "10"])
        assert result.exit_code == 0
        assert "부족" in result.output

    def test_export_and_import_commands(self, db_session, app, make_product, tmp_path):
        make_product(name="내보내기")
        out = tmp_path / "products.csv"

        result = app.test_cli_runner().invoke(args=["catalog", "export", "--out", str(out)])
        assert result.exit_code == 0
        assert out.read_bytes().startswith("\ufeff".encode("utf-8"))

        sheet = tmp_path / "sheet.csv"
        sheet.write_text("상품명,원가\n가져오기,100\n", encoding="utf-8")
        result = app.test_cli_runner().invoke(args=["catalog", "import", str(sheet)])
        assert result.exit_code == 0
        assert "created: 1" in result.output


class TestJsonBodies:
    def test_non_object_bodies_rejected(self, db_session, client, make_product):
        p = make_product()

        assert client.post("/api/products/bulk-delete", json=[p.id]).status_code == 400
        assert client.post("/api/products/bulk-price", json=[p.id]).status_code == 400
        assert client.post("/api/stock/movements", json=[p.id]).status_code == 400
        assert client.post("/api/estimates", json=[{"product_code": "BS0001"}]).status_code == 400
        assert client.post("/api/products", json=["x"]).status_code == 400
