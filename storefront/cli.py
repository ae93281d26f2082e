"""Flask CLI commands for admin operations."""
import click
from flask import current_app


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables and seed genders, colors and sizes."""
        from storefront.extensions import db
        from storefront.seed import seed_reference_data

        db.create_all()
        added = seed_reference_data()
        click.echo(f"Database initialized ({added} reference rows added).")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Seed demo brands, categories and products (idempotent)."""
        from storefront.seed import seed_demo_catalog

        created = seed_demo_catalog()
        if not created:
            click.echo("Products already exist, skipping demo seed.")
            return
        click.echo(f"Seeded {created} demo products.")

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.option("--name", default=None)
    @click.option(
        "--role",
        type=click.Choice(["admin", "editor", "viewer"]),
        default="admin",
        show_default=True,
    )
    def create_admin(email, name, role):
        """Create the user if needed and give them a back-office role."""
        from storefront.extensions import db
        from storefront.models.user import User, UserRole

        email = email.strip().lower()
        if "@" not in email:
            raise click.ClickException(f"Not an email address: {email}")

        user = User.query.filter_by(email=email).first()
        if not user:
            user = User(email=email, name=name)
            db.session.add(user)
            db.session.flush()

        row = UserRole.query.filter_by(user_id=user.id).first()
        if row:
            row.role = role
        else:
            db.session.add(UserRole(user_id=user.id, role=role))
        db.session.commit()
        click.echo(f"{email} is now {role} (user id {user.id}).")

    @app.cli.command("backfill-price-history")
    @click.option("--product-id", type=int, default=None, help="Only this product")
    def backfill_price_history(product_id):
        """Record the current price of every product whose price changed."""
        from storefront.models.product import Product
        from storefront.workers.price_snapshot import snapshot_product_price

        if product_id is not None:
            ids = [product_id]
        else:
            ids = [pid for (pid,) in Product.query.with_entities(Product.id).order_by(Product.id)]

        recorded = 0
        for pid in ids:
            if snapshot_product_price(pid) is not None:
                recorded += 1
        click.echo(f"Recorded {recorded} price entries across {len(ids)} products.")

    @app.cli.command("stats")
    def stats():
        """Show catalog and order statistics."""
        from sqlalchemy import func
        from storefront.extensions import db
        from storefront.models.order import Order
        from storefront.models.product import Product

        published = Product.query.filter_by(is_published=True).count()
        total = Product.query.count()
        click.echo(f"Total products: {total} ({published} published)")

        by_status = db.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        click.echo(f"Total orders: {sum(count for _, count in by_status)}")
        for status, count in sorted(by_status):
            click.echo(f"  {status}: {count}")

        click.echo(f"Database: {current_app.config['SQLALCHEMY_DATABASE_URI'].split('@')[-1]}")
