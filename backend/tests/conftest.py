"""
Pytest fixtures for stockroom backend tests.

Provides test database setup, a product factory and the test client.
"""

import pytest
from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import Product
from stockroom.services.image_service import clear_url_cache


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'MINIO_ENDPOINT': 'minio.test:9000',
        'MINIO_BUCKET': 'test-bucket',
        'ESTIMATE_SUPPLIER_NAME': '테스트상사',
        'ESTIMATE_SUPPLIER_REG_NO': '123-45-67890',
        'ESTIMATE_SUPPLIER_REPRESENTATIVE': '홍길동',
        'ESTIMATE_SUPPLIER_ADDRESS': '서울시 중구 세종대로 1',
        'ESTIMATE_INTRO_LINE': '아래와 같이 입고 합니다.',
        'ESTIMATE_CONTACT_LINE': '담당자: 홍길동 | 전화: 02-000-0000',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        clear_url_cache()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory for committed products.

    Stock is given as lists of quantities; prices as lists of amounts.
    """
    counter = {"seq": 0}

    def _make(
        product_code=None,
        name="상품",
        seq_no=None,
        inbound=(),
        outbound=(),
        costs=(),
        wholesale=(),
        sales=(),
        photos=(),
        **fields,
    ):
        counter["seq"] += 1
        seq = seq_no if seq_no is not None else counter["seq"]
        product = Product(
            seq_no=seq,
            product_code=product_code or f"BS{seq:04d}",
            name=name,
            photo_history=[{"date": f"2026-01-01 00:00:{i:02d}", "path": p} for i, p in enumerate(photos)],
            cost_history=[{"date": f"2026-01-01 00:00:{i:02d}", "amount": a} for i, a in enumerate(costs)],
            wholesale_price_history=[{"date": f"2026-01-01 00:00:{i:02d}", "amount": a} for i, a in enumerate(wholesale)],
            sale_price_history=[{"date": f"2026-01-01 00:00:{i:02d}", "amount": a} for i, a in enumerate(sales)],
            inbound_records=[{"date": f"2026-01-02 00:00:{i:02d}", "quantity": q} for i, q in enumerate(inbound)],
            outbound_records=[{"date": f"2026-01-03 00:00:{i:02d}", "quantity": q} for i, q in enumerate(outbound)],
            **fields,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make
