from __future__ import annotations

import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError, InterfaceError, OperationalError, transaction

from .errors import PersistenceError, StoreUnavailable

HERE = Path(__file__).resolve()
BACKEND_DIR = HERE.parents[3]


def setup_django() -> None:
    """Initialize Django so the ORM can be used from a standalone script."""
    if str(BACKEND_DIR) not in sys.path:
        sys.path.append(str(BACKEND_DIR))
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "server.settings")
    from django.apps import apps

    if apps.ready:
        return
    import django

    django.setup()


def ensure_store_available() -> None:
    """Fail fast when the database cannot be reached or the catalog schema is missing."""
    from django.db import connection

    try:
        connection.ensure_connection()
        from catalog.models import AttributeDefinition

        AttributeDefinition.objects.exists()
    except (OperationalError, InterfaceError, ImproperlyConfigured) as e:
        raise StoreUnavailable(str(e)) from e
    except DatabaseError as e:
        raise StoreUnavailable(f"catalog schema not usable: {e}") from e


@contextmanager
def savepoint(entity: str) -> Iterator[None]:
    """Run one entity write atomically and translate database errors.

    Connection-level failures become StoreUnavailable; anything else the
    database rejects becomes PersistenceError for the caller to report.
    """
    try:
        with transaction.atomic():
            yield
    except (OperationalError, InterfaceError) as e:
        raise StoreUnavailable(f"{entity}: {e}") from e
    except DatabaseError as e:
        raise PersistenceError(entity, str(e)) from e
