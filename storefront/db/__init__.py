# storefront/db/__init__.py
"""
Database module.

Boots Django's ORM outside of a Django web process and gives the async
FastAPI layer one way into it (run_orm).
"""
import os
from typing import Any, Callable, Optional

_django_ready = False
_connection_error: Optional[str] = None


def setup_django() -> None:
    """
    Configure and populate Django's app registry.

    Safe to call more than once; only the first call does any work.
    Must run before anything imports storefront.shop.models.
    """
    global _django_ready
    if _django_ready:
        return

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "storefront.settings")

    import django
    django.setup()
    _django_ready = True


def connect_db() -> bool:
    """
    Verify the configured database answers.

    If the database is not available, stores the error for later retrieval
    rather than raising.
    """
    global _connection_error
    setup_django()

    from django.db import connection
    from django.db.utils import OperationalError
    from storefront.core.logging import log

    try:
        connection.ensure_connection()
        log("DB", f"Connected to {connection.vendor} database '{connection.settings_dict['NAME']}'")
        _connection_error = None
    except OperationalError as e:
        _connection_error = str(e)
        log("DB", f"Database not available: {_connection_error}")
        log("DB", "The API will start but every data endpoint will fail until it is reachable.")
    return _connection_error is None


def disconnect_db() -> None:
    """Close every ORM connection held by this thread."""
    from django.db import connections
    connections.close_all()


def is_connected() -> bool:
    """Check if the database answered the last connect_db() probe."""
    return _django_ready and _connection_error is None


def get_connection_error() -> Optional[str]:
    """Get connection error message if connection failed."""
    return _connection_error


def _call_and_release(func: Callable, *args: Any, **kwargs: Any) -> Any:
    from django.db import close_old_connections

    close_old_connections()
    try:
        return func(*args, **kwargs)
    finally:
        close_old_connections()


async def run_orm(func: Callable, *args: Any, **kwargs: Any) -> Any:
    """
    Run synchronous ORM code from an async endpoint.

    Django forbids ORM calls on a thread with a running event loop, so the
    call is moved to asgiref's shared sync thread. Connections past their
    CONN_MAX_AGE are released before and after, mirroring what Django's
    request_started / request_finished signals do in a normal request cycle.
    """
    from asgiref.sync import sync_to_async
    return await sync_to_async(_call_and_release, thread_sensitive=True)(func, *args, **kwargs)
