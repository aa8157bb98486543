"""
Flask CLI commands for the register.

Commands:
- flask seed-catalog: Load demo products into the catalog tables
- flask find-product QUERY: Look a product up by barcode, name or SKU
"""

import click
from decimal import Decimal
from pos_register.database import get_session
from pos_register.models import Product, ProductStock
from pos_register.services.catalog_service import SqlCatalog


DEMO_PRODUCTS = [
    # sku, barcode, name, category, price, tax %, stock
    ('RICE-5KG', '8901234567890', 'Basmati Rice 5kg', 'Grocery', '540.00', '5', 40),
    ('TEA-250', '8901234567891', 'Assam Tea 250g', 'Grocery', '160.00', '5', 60),
    ('SOAP-100', '8901234567892', 'Sandal Soap 100g', 'Personal Care', '45.00', '18', 120),
    ('PEN-BLUE', '8901234567893', 'Ballpoint Pen Blue', 'Stationery', '10.00', '12', 300),
    ('HEAD-01', '8901234567894', 'Wired Headphones', 'Electronics', '799.00', '18', 15),
]


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('seed-catalog')
    @click.option('--reset', is_flag=True, help='Delete existing products first')
    def seed_catalog(reset):
        """Load demo products into the catalog."""
        session = get_session()
        try:
            if reset:
                session.query(ProductStock).delete()
                session.query(Product).delete()

            created = 0
            for sku, barcode, name, category, price, tax, stock in DEMO_PRODUCTS:
                if session.query(Product).filter_by(sku=sku).first():
                    continue
                product = Product(
                    sku=sku,
                    barcode=barcode,
                    name=name,
                    category=category,
                    active=True,
                    sale_price=Decimal(price),
                    tax_rate=Decimal(tax)
                )
                product.stock = ProductStock(on_hand_qty=stock)
                session.add(product)
                created += 1

            session.commit()
            click.echo(click.style(f'Catalog seeded: {created} product(s) created', fg='green'))
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'Error seeding catalog: {str(e)}', fg='red'))
            raise click.Abort()

    @app.cli.command('find-product')
    @click.argument('query')
    def find_product(query):
        """Look up a product by barcode, name or SKU."""
        product = SqlCatalog(get_session).find_product(query)
        if product is None:
            click.echo(click.style(f'No product found for "{query}"', fg='yellow'))
            return

        click.echo(f'{product.name} (id={product.id}, sku={product.sku})')
        click.echo(f'   Price: {product.unit_price}  Tax: {product.tax_rate}%')
        click.echo(f'   Stock: {product.stock_quantity}')
