"""Tests for blog posts, product videos and manual price history entries."""
from datetime import datetime, timezone
import pytest
from pydantic import ValidationError
from storefront.models import BlogPost, PriceHistory
from storefront.services import blog_service, price_history_service, video_service
from storefront.services.errors import ActionError


def test_create_post_defaults_author_and_slug(db, as_editor):
    post = blog_service.create_post({"title": "How to Lace Boots", "category": "guides"})
    assert post.slug == "how-to-lace-boots"
    assert post.author_id == as_editor.id
    assert post.is_published is False

    second = blog_service.create_post({"title": "How to Lace Boots", "category": "guides"})
    assert second.slug != post.slug


def test_update_post_slug_must_be_free(db, as_editor):
    first = blog_service.create_post({"title": "First", "category": "news"})
    second = blog_service.create_post({"title": "Second", "category": "news"})

    with pytest.raises(ActionError):
        blog_service.update_post(second.id, {"slug": first.slug})

    updated = blog_service.update_post(second.id, {"title": "Renamed", "isPublished": True})
    assert (updated.title, updated.slug, updated.is_published) == ("Renamed", "second", True)
    assert blog_service.update_post(99999, {"title": "x"}) is None


def test_admin_post_list(db, as_editor):
    blog_service.create_post(
        {"title": "Zebra", "category": "news", "isPublished": True, "date": "2024-01-01T00:00:00Z"}
    )
    blog_service.create_post(
        {"title": "Apple", "category": "guides", "date": "2024-06-01T00:00:00Z"}
    )

    by_date = blog_service.get_admin_posts()
    assert [p["title"] for p in by_date.items] == ["Apple", "Zebra"]
    assert [p["title"] for p in blog_service.get_admin_posts(sort="title_asc").items] == ["Apple", "Zebra"]
    assert [p["title"] for p in blog_service.get_admin_posts(published=True).items] == ["Zebra"]
    assert [p["title"] for p in blog_service.get_admin_posts(category="guides").items] == ["Apple"]
    assert blog_service.get_admin_posts(search="zeb").total == 1


def test_public_posts_are_published_only(db):
    db.session.add_all(
        [
            BlogPost(title="Live", slug="live", category="news", is_published=True,
                     date=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            BlogPost(title="Draft", slug="draft", category="news", is_published=False),
        ]
    )
    db.session.commit()

    assert [p.slug for p in blog_service.get_published_posts().items] == ["live"]
    assert blog_service.get_published_post("draft") is None
    assert [row.slug for row in blog_service.get_sitemap_posts()] == ["live"]


def test_delete_post(db, as_editor):
    post = blog_service.create_post({"title": "Gone", "category": "news"})
    assert blog_service.delete_post(post.id) is True
    assert blog_service.get_post(post.id) is None
    assert blog_service.delete_post(post.id) is False


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------

def test_video_urls_must_match_platform(db, catalog, as_editor):
    product_id = catalog["runner"].id
    video = video_service.create_video(
        {"productId": product_id, "platform": "youtube", "videoUrl": "https://youtu.be/dQw4w9WgXcQ"}
    )
    assert video.platform == "youtube"

    with pytest.raises(ValidationError):
        video_service.create_video({"productId": product_id, "videoUrl": "not a url"})
    with pytest.raises(ActionError):
        video_service.create_video({"productId": 99999, "videoUrl": "https://www.tiktok.com/@a/video/1"})


def test_video_update_and_listing(db, catalog, as_editor):
    video = video_service.create_video(
        {
            "productId": catalog["runner"].id,
            "videoUrl": "https://www.tiktok.com/@shoes/video/123",
            "author": "shoes",
        }
    )

    updated = video_service.update_video(video.id, {"title": "Unboxing", "productId": catalog["boot"].id})
    assert (updated.title, updated.product_id, updated.author) == ("Unboxing", catalog["boot"].id, "shoes")
    with pytest.raises(ValidationError):
        video_service.update_video(video.id, {"videoUrl": "nope"})

    listing = video_service.get_admin_videos(search="unbox", platform="tiktok")
    assert [v["product_name"] for v in listing.items] == ["Trail Boot"]
    assert video_service.get_admin_videos(platform="youtube").total == 0

    assert video_service.delete_video(video.id) is True
    assert video_service.get_video(video.id) is None


# ---------------------------------------------------------------------------
# Price history
# ---------------------------------------------------------------------------

def test_manual_price_history_entries(db, catalog, as_editor):
    product_id = catalog["runner"].id
    older = price_history_service.create_price_history(
        {"productId": product_id, "price": "129.99", "recordedAt": "2024-01-01T00:00:00Z"}
    )
    newer = price_history_service.create_price_history(
        {"productId": product_id, "price": 119.99, "salePrice": 99}
    )

    entries = price_history_service.get_price_history(product_id)
    assert [e["id"] for e in entries] == [newer.id, older.id]
    assert entries[0]["price"] == 119.99
    assert entries[0]["sale_price"] == 99.0

    with pytest.raises(ActionError):
        price_history_service.create_price_history({"productId": 99999, "price": 1})

    assert price_history_service.delete_price_history(older.id) is True
    assert PriceHistory.query.filter_by(product_id=product_id).count() == 1
