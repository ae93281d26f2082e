import fakeredis
import pytest
from storefront import create_app, extensions
from storefront.auth import login_user
from storefront.extensions import db as _db
from storefront.models import (
    Brand,
    Category,
    Color,
    Gender,
    Product,
    ProductImage,
    ProductVariant,
    Size,
    User,
    UserRole,
)


@pytest.fixture(scope="session")
def app():
    """Create application for testing."""
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()


@pytest.fixture
def db(app):
    """Database for one test; every table is emptied afterwards."""
    yield _db
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.remove()


@pytest.fixture
def client(app, db):
    return app.test_client()


@pytest.fixture
def make_user(db):
    def _make(email="shopper@example.com", role=None, name=None):
        user = User(email=email, name=name)
        db.session.add(user)
        db.session.flush()
        if role:
            db.session.add(UserRole(user_id=user.id, role=role))
        db.session.commit()
        return user

    return _make


@pytest.fixture
def as_editor(app, make_user):
    """Run the test inside a request signed in as an editor."""
    user = make_user("editor@example.com", role="editor")
    with app.test_request_context():
        login_user(user)
        yield user


@pytest.fixture
def login(client):
    """Sign the test client in as ``user``."""

    def _login(user):
        with client.session_transaction() as sess:
            sess["user_id"] = user.id

    return _login


@pytest.fixture
def catalog(db):
    """A small published catalog: two brands, two products, four variants."""
    men = Gender(label="Men", slug="men")
    women = Gender(label="Women", slug="women")
    black = Color(name="Black", slug="black", hex_code="#000000")
    white = Color(name="White", slug="white", hex_code="#FFFFFF")
    s9 = Size(name="US 9", slug="us-9", sort_order=1)
    s10 = Size(name="US 10", slug="us-10", sort_order=2)
    sneakers = Category(name="Sneakers", slug="sneakers")
    boots = Category(name="Boots", slug="boots")
    nb = Brand(name="New Balance", slug="new-balance")
    nike = Brand(name="Nike", slug="nike")
    db.session.add_all([men, women, black, white, s9, s10, sneakers, boots, nb, nike])
    db.session.flush()

    runner = Product(
        name="Fresh Foam 1080", slug="fresh-foam-1080", brand=nb,
        category=sneakers, gender=men, is_published=True,
    )
    boot = Product(
        name="Trail Boot", slug="trail-boot", brand=nike,
        category=boots, gender=women, is_published=True,
    )
    draft = Product(name="Secret Shoe", slug="secret-shoe", brand=nb, is_published=False)
    db.session.add_all([runner, boot, draft])
    db.session.flush()

    variants = [
        ProductVariant(product=runner, sku="FF-BLK-9", price_cents=12000, color=black, size=s9, in_stock=5),
        ProductVariant(
            product=runner, sku="FF-WHT-10", price_cents=15000, sale_price_cents=13000,
            color=white, size=s10, in_stock=2,
        ),
        ProductVariant(product=boot, sku="TB-BLK-10", price_cents=20000, color=black, size=s10, in_stock=1),
        ProductVariant(product=draft, sku="SS-BLK-9", price_cents=9000, color=black, size=s9, in_stock=1),
    ]
    db.session.add_all(variants)
    db.session.add_all(
        [
            ProductImage(product=runner, url="/uploads/images/runner.jpg", is_primary=True),
            ProductImage(product=boot, url="/uploads/images/boot.jpg", is_primary=True),
        ]
    )
    db.session.commit()
    return {
        "runner": runner,
        "boot": boot,
        "draft": draft,
        "variants": {v.sku: v for v in variants},
        "brands": {"nb": nb, "nike": nike},
        "categories": {"sneakers": sneakers, "boots": boots},
        "colors": {"black": black, "white": white},
        "sizes": {"9": s9, "10": s10},
    }


class RecordingQueue:
    def __init__(self):
        self.jobs = []

    def enqueue(self, func, *args, **kwargs):
        self.jobs.append((func.__name__, args))


@pytest.fixture
def queue(monkeypatch):
    q = RecordingQueue()
    monkeypatch.setattr(extensions, "task_queue", q)
    return q


@pytest.fixture
def redis(monkeypatch):
    """An in-process Redis standing in for the page cache and job locks."""
    client = fakeredis.FakeRedis()
    monkeypatch.setattr(extensions, "redis_client", client)
    yield client
    client.flushall()
