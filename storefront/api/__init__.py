# storefront/api/__init__.py
"""
HTTP routers.

Every router module imports the ORM models, so storefront.db.setup_django()
must have run before this package is imported (storefront.main does that).
"""
