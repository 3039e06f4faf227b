"""
Core — Store Error Translation

Helpers that keep raw database errors out of the service contract.

@file core/db.py
"""

import functools
import logging
from contextlib import contextmanager

from django.db import IntegrityError, InterfaceError, OperationalError, transaction

from core.exceptions import DuplicateNameError, StoreUnavailableError

logger = logging.getLogger('multistock')


def translate_store_errors(func):
    """
    Map transport / transaction failures to StoreUnavailableError.

    Apply it *outside* ``transaction.atomic`` so the unit of work has
    already been rolled back when the caller sees the error.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error('%s aborted, store unavailable: %s', func.__qualname__, exc)
            raise StoreUnavailableError() from exc

    return wrapper


@contextmanager
def unique_name_guard(label: str, name: str):
    """
    Run a write in a savepoint and turn a unique violation into
    DuplicateNameError, leaving the outer transaction usable.
    """
    try:
        with transaction.atomic():
            yield
    except IntegrityError as exc:
        raise DuplicateNameError(detail=f'{label} "{name}" already exists.') from exc
