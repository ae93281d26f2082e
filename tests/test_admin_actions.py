"""Tests for back-office write actions and their guards."""
import pytest
from pydantic import ValidationError
from storefront.auth import Forbidden, Unauthenticated, login_user, require_editor, set_user_role
from storefront.models import (
    Category,
    FeaturedReview,
    Order,
    OrderItem,
    Product,
    ProductImage,
    ProductVariant,
    Review,
    UserRole,
)
from storefront.services import (
    brand_service,
    category_service,
    product_admin_service,
    review_service,
)
from storefront.services.errors import ActionError


def test_anonymous_is_unauthenticated(app, db):
    with app.test_request_context():
        with pytest.raises(Unauthenticated):
            require_editor()


def test_viewer_is_forbidden(app, make_user):
    viewer = make_user("viewer@example.com")
    with app.test_request_context():
        login_user(viewer)
        with pytest.raises(Forbidden):
            brand_service.create_brand({"name": "Nope"})


def test_role_changes_need_admin(app, make_user, as_editor):
    with pytest.raises(Forbidden):
        set_user_role(as_editor.id, "admin")


def test_admin_sets_role(app, make_user):
    admin = make_user("admin@example.com", role="admin")
    target = make_user("staff@example.com")
    with app.test_request_context():
        login_user(admin)
        assert set_user_role(target.id, "editor").role == "editor"
        assert set_user_role(target.id, "viewer").role == "viewer"
        assert set_user_role(999999, "editor") is None
        with pytest.raises(ValidationError):
            set_user_role(target.id, "owner")
    assert UserRole.query.filter_by(user_id=target.id).count() == 1


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

def _reviews(db, product, count):
    reviews = [
        Review(product_id=product.id, reviewer_name=f"Reviewer {i}", rating=5, comment="Great")
        for i in range(count)
    ]
    db.session.add_all(reviews)
    db.session.commit()
    return reviews


def test_deleting_review_removes_featured_entry(db, catalog, as_editor):
    review = _reviews(db, catalog["runner"], 1)[0]
    featured = review_service.set_featured_review(review.id)
    assert (featured.first_name, featured.last_name, featured.order) == ("Reviewer", "0", 1)

    assert review_service.delete_review(review.id) is True
    assert FeaturedReview.query.count() == 0
    assert review_service.delete_review(review.id) is False


def test_at_most_three_featured_reviews(db, catalog, as_editor):
    reviews = _reviews(db, catalog["runner"], 4)
    orders = [review_service.set_featured_review(r.id).order for r in reviews[:3]]
    assert orders == [1, 2, 3]

    with pytest.raises(ActionError):
        review_service.set_featured_review(reviews[3].id)

    review_service.set_featured_review(reviews[1].id, featured=False)
    assert review_service.set_featured_review(reviews[3].id).order == 2


def test_admin_review_list_flags_featured(db, catalog, as_editor):
    first, second = _reviews(db, catalog["boot"], 2)
    review_service.set_featured_review(first.id)

    flags = {r["id"]: r["is_featured"] for r in review_service.get_admin_reviews().items}
    assert flags == {first.id: True, second.id: False}


def test_create_review_needs_existing_product(db, as_editor):
    with pytest.raises(ActionError):
        review_service.create_review({"product_id": 4242, "rating": 4})
    with pytest.raises(ValidationError):
        review_service.create_review({"product_id": 4242, "rating": 6})


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def test_category_tree(db, as_editor):
    shoes = category_service.create_category({"name": "Shoes"})
    category_service.create_category({"name": "Running", "parentId": shoes.id})
    category_service.quick_create_category("Accessories")

    tree = category_service.get_admin_categories(hierarchical=True)
    assert [(c["name"], c["depth"]) for c in tree] == [
        ("Accessories", 0),
        ("Shoes", 0),
        ("Running", 1),
    ]
    assert tree[2]["parent_name"] == "Shoes"
    assert [c["name"] for c in category_service.get_admin_categories(parent_id="root")] == [
        "Accessories",
        "Shoes",
    ]


def test_category_cannot_be_its_own_ancestor(db, as_editor):
    shoes = category_service.create_category({"name": "Shoes"})
    running = category_service.create_category({"name": "Running", "parent_id": shoes.id})

    with pytest.raises(ActionError):
        category_service.update_category(shoes.id, {"parent_id": shoes.id})
    with pytest.raises(ActionError):
        category_service.update_category(shoes.id, {"parent_id": running.id})
    with pytest.raises(ActionError):
        category_service.create_category({"name": "Orphan", "parent_id": 99999})


def test_category_delete_is_refused_when_in_use(db, catalog, as_editor):
    sneakers = catalog["categories"]["sneakers"]
    with pytest.raises(ActionError):
        category_service.delete_category(sneakers.id)

    child = category_service.create_category({"name": "Trail", "parent_id": catalog["categories"]["boots"].id})
    with pytest.raises(ActionError):
        category_service.delete_category(catalog["categories"]["boots"].id)
    assert category_service.delete_category(child.id) is True
    assert db.session.get(Category, child.id) is None


def test_brand_delete_keeps_products(db, catalog, as_editor):
    nike = catalog["brands"]["nike"]
    assert brand_service.delete_brand(nike.id) is True
    boot = db.session.get(Product, catalog["boot"].id)
    assert boot.brand_id is None


def test_brand_update_rejects_taken_slug(db, catalog, as_editor):
    with pytest.raises(ActionError):
        brand_service.update_brand(catalog["brands"]["nike"].id, {"slug": "new-balance"})
    assert brand_service.update_brand(999999, {"name": "Ghost"}) is None


# ---------------------------------------------------------------------------
# Products and variants
# ---------------------------------------------------------------------------

def test_create_product_with_first_variant(db, catalog, as_editor, queue):
    product = product_admin_service.create_product(
        {
            "name": "Fresh Foam 1080",
            "brandId": catalog["brands"]["nb"].id,
            "variant": {"sku": "FF-NEW-11", "price": "129.99", "salePrice": 99.5},
            "imageUrl": "https://cdn.example.com/ff.jpg",
        }
    )

    assert product.slug.startswith("fresh-foam-1080-")
    assert product.is_published is False
    variant = product.variants[0]
    assert (variant.price_cents, variant.sale_price_cents) == (12999, 9950)
    assert product.default_variant_id == variant.id
    assert product.primary_image.url == "https://cdn.example.com/ff.jpg"
    assert queue.jobs == [("snapshot_product_price", (product.id,))]


def test_create_product_rejects_duplicate_sku_and_bad_brand(db, catalog, as_editor, queue):
    with pytest.raises(ActionError):
        product_admin_service.create_product(
            {"name": "Copy", "variant": {"sku": "FF-BLK-9", "price": 10}}
        )
    with pytest.raises(ActionError):
        product_admin_service.create_product(
            {"name": "Copy", "brandId": 99999, "variant": {"sku": "NEW-1", "price": 10}}
        )
    with pytest.raises(ValidationError):
        product_admin_service.create_product({"name": "Copy", "variant": {"sku": "NEW-2", "price": -1}})
    assert queue.jobs == []


def test_update_product(db, catalog, as_editor):
    runner = catalog["runner"]
    boot_variant = catalog["variants"]["TB-BLK-10"]

    updated = product_admin_service.update_product(runner.id, {"name": "Fresh Foam X", "isPublished": False})
    assert updated.name == "Fresh Foam X"
    assert updated.slug == "fresh-foam-1080"
    assert updated.is_published is False

    with pytest.raises(ActionError):
        product_admin_service.update_product(runner.id, {"slug": "trail-boot"})
    with pytest.raises(ActionError):
        product_admin_service.update_product(runner.id, {"defaultVariantId": boot_variant.id})
    assert product_admin_service.update_product(999999, {"name": "Ghost"}) is None


def test_variant_uniqueness(db, catalog, as_editor, queue):
    runner = catalog["runner"]
    black = catalog["colors"]["black"]
    s9 = catalog["sizes"]["9"]

    with pytest.raises(ActionError):
        product_admin_service.add_variant(runner.id, {"sku": "TB-BLK-10", "price": 10})
    with pytest.raises(ActionError):
        product_admin_service.add_variant(
            runner.id, {"sku": "FF-BLK-9-B", "price": 10, "colorId": black.id, "sizeId": s9.id}
        )

    variant = product_admin_service.add_variant(runner.id, {"sku": "FF-BLK-10", "price": 125})
    assert variant.price_cents == 12500
    assert queue.jobs == [("snapshot_product_price", (runner.id,))]


def test_variant_price_change_queues_snapshot(db, catalog, as_editor, queue):
    variant = catalog["variants"]["FF-BLK-9"]

    product_admin_service.update_variant(variant.id, {"inStock": 10})
    assert queue.jobs == []

    product_admin_service.update_variant(variant.id, {"salePrice": "99.99"})
    assert variant.sale_price_cents == 9999
    assert queue.jobs == [("snapshot_product_price", (variant.product_id,))]


def test_ordered_product_cannot_be_deleted(db, catalog, make_user, as_editor):
    buyer = make_user("buyer@example.com")
    variant = catalog["variants"]["TB-BLK-10"]
    order = Order(user_id=buyer.id, total_cents=20000)
    order.items.append(OrderItem(variant_id=variant.id, quantity=1, price_at_purchase_cents=20000))
    db.session.add(order)
    db.session.commit()

    with pytest.raises(ActionError):
        product_admin_service.delete_product(catalog["boot"].id)
    with pytest.raises(ActionError):
        product_admin_service.delete_variant(variant.id)


def test_delete_product_removes_variants_and_images(db, catalog, as_editor):
    runner_id = catalog["runner"].id
    assert product_admin_service.delete_product(runner_id) is True

    assert db.session.get(Product, runner_id) is None
    assert ProductVariant.query.filter_by(product_id=runner_id).count() == 0
    assert ProductImage.query.filter_by(product_id=runner_id).count() == 0
    assert product_admin_service.delete_product(runner_id) is False


def test_primary_image_is_exclusive(db, catalog, as_editor):
    runner = catalog["runner"]
    second = product_admin_service.add_image(runner.id, {"url": "/uploads/images/side.jpg", "sortOrder": 1})
    assert second.is_primary is False

    product_admin_service.set_primary_image(second.id)
    primaries = ProductImage.query.filter_by(product_id=runner.id, is_primary=True).all()
    assert [img.id for img in primaries] == [second.id]

    with pytest.raises(ActionError):
        product_admin_service.add_image(
            runner.id, {"url": "/x.jpg", "variantId": catalog["variants"]["TB-BLK-10"].id}
        )
