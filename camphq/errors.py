# -*- coding: utf-8 -*-
"""
Error kinds raised by the compensation services and their JSON contract.

Every failure answers as {"ok": false, "data": null, "error": "..."}.
"""
from __future__ import annotations

import logging

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db

logger = logging.getLogger(__name__)


class IncentiveError(Exception):
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(IncentiveError):
    """Malformed request value."""
    status_code = 400


class AccessDeniedError(IncentiveError):
    status_code = 403


class NotFoundError(IncentiveError):
    status_code = 404


class AlreadyFinalizedError(IncentiveError):
    """Mutation or recalculation of a finalized session."""
    status_code = 409


class DuplicateRecordError(IncentiveError):
    # raised by repositories when a unique key already holds a row
    status_code = 409


def error_payload(message: str):
    return {"ok": False, "data": None, "error": message}


def register_error_handlers(bp) -> None:
    @bp.errorhandler(IncentiveError)
    def _incentive_error(exc: IncentiveError):
        if exc.status_code >= 500:
            logger.error("incentive error: %s", exc.message)
        return jsonify(error_payload(exc.message)), exc.status_code

    @bp.errorhandler(SQLAlchemyError)
    def _db_error(exc: SQLAlchemyError):
        logger.exception("data layer failure")
        try:
            db.session.rollback()
        except SQLAlchemyError:
            logger.exception("rollback failed")
        return jsonify(error_payload("Database error, please retry")), 500
