"""
Unit-of-work coordinator.

Wraps a body in one store transaction: commit when the body reports success,
roll back when it reports failure or the store raises. Every call opens its
own session, so units of work never nest.
"""

from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.database import SessionLocal
from ..core.exceptions import PersistenceError, StoreError
from ..core.logging_config import get_logger
from ..core.metrics import MetricsHelper
from ..schemas.service_results import ServiceResult

logger = get_logger(__name__)

TransactionBody = Callable[[Session], ServiceResult]


class TransactionService:
    """Runs callables inside an all-or-nothing unit of work."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or SessionLocal

    def execute_within_transaction(
        self, body: TransactionBody, label: str = "transaction"
    ) -> ServiceResult:
        """
        Run ``body`` and commit only if it succeeds.

        Args:
            body: Receives the session; returns a ServiceResult
            label: Name used in logs

        Returns:
            The body's result, or a store failure result when the store raised
        """
        db = self._session_factory()
        try:
            result = body(db)
            if result.success:
                db.commit()
            else:
                db.rollback()
                logger.warning(
                    "Transaction rolled back",
                    extra={"label": label, "error_code": result.error_code},
                )
            return result
        except SQLAlchemyError as e:
            db.rollback()
            error = StoreError(str(e), details={"label": label})
            logger.error("Transaction failed", extra=error.to_dict())
            MetricsHelper.track_error("transaction", type(e).__name__)
            return ServiceResult.failure(error.message, error_code="store_failure")
        except Exception as e:
            # Nothing raised by a body may reach the caller
            db.rollback()
            error = PersistenceError(
                str(e), details={"label": label}, error_code="unexpected_failure"
            )
            logger.exception("Transaction aborted", extra=error.to_dict())
            MetricsHelper.track_error("transaction", type(e).__name__)
            return ServiceResult.failure(error.message, error_code=error.error_code)
        finally:
            db.close()
