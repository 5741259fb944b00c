# Overview: Row locking and retry for writes that race between tills.

"""
Concurrency helpers for stock-moving writes (checkouts, product edits).

Two kinds of conflict are expected while several workers sell at once:

- transient: lock timeouts (OperationalError) and version_id mismatches
  (StaleDataError). The unit of work is rolled back and replayed.
- duplicate submission: a unique key such as checkout_key collides with a
  row an identical request has just committed (IntegrityError). Replaying
  cannot succeed, so the caller may hand back the committed row instead
  through `on_duplicate`.
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def locked_row(model, row_id: int, org_id: int):
    """
    Load one row of an organization with SELECT ... FOR UPDATE.

    SQLite ignores FOR UPDATE; version_id still catches lost updates there.
    """
    return (
        db.session.query(model)
        .filter(model.id == row_id, model.org_id == org_id)
        .with_for_update()
        .first()
    )


def run_with_retry(
    func,
    *,
    label: str = "write",
    attempts: int = 3,
    backoff_base: float = 0.1,
    on_duplicate=None,
):
    """
    Run `func`, which commits its own unit of work.

    Transient conflicts are retried with exponential backoff. After an
    IntegrityError is rolled back, `on_duplicate()` is asked for the row that
    won the race: a non-None result is returned, None re-raises. Domain
    errors raised by `func` propagate untouched.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except TRANSIENT_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                current_app.logger.error("%s failed after %s attempts: %s", label, attempts, exc)
                raise
            current_app.logger.warning(
                "%s conflict on attempt %s/%s, retrying: %s", label, attempt, attempts, exc
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
        except IntegrityError:
            db.session.rollback()
            winner = on_duplicate() if on_duplicate is not None else None
            if winner is None:
                raise
            current_app.logger.info("%s lost a duplicate-key race; using the committed row", label)
            return winner
