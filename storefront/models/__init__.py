from storefront.models.user import User, UserRole, Guest, Address
from storefront.models.brand import Brand, brand_categories
from storefront.models.category import Category
from storefront.models.filters import Gender, Color, Size
from storefront.models.product import Product
from storefront.models.variant import ProductVariant
from storefront.models.image import ProductImage
from storefront.models.video import ProductVideo
from storefront.models.review import Review, FeaturedReview
from storefront.models.price_history import PriceHistory
from storefront.models.cart import Cart, CartItem
from storefront.models.order import Order, OrderItem
from storefront.models.blog import BlogPost

__all__ = [
    "User",
    "UserRole",
    "Guest",
    "Address",
    "Brand",
    "brand_categories",
    "Category",
    "Gender",
    "Color",
    "Size",
    "Product",
    "ProductVariant",
    "ProductImage",
    "ProductVideo",
    "Review",
    "FeaturedReview",
    "PriceHistory",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "BlogPost",
]
