# storefront/__init__.py
"""
Storefront - runnable companion to the Django ORM tutorial.
"""
__version__ = "1.0.0"
