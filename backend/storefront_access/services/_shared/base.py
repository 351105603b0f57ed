from __future__ import annotations

from dataclasses import dataclass

from storefront_access.core import errors as api_errors
from storefront_access.services._shared.errors import (
    BadRequestError,
    ErrorKind,
    ServiceError,
)
from storefront_access.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting call-scoped data (actor, correlation id).

    :param actor_id: Authenticated user identifier.
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: str | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation to transport-level errors.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services never touch the global session directly; they use a Unit of
      Work or a port whose adapter does.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        self.ctx = ctx or ServiceContext()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self, *, enforce_db_readonly: bool = True) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param enforce_db_readonly: Apply ``SET TRANSACTION READ ONLY`` when supported.
        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(enforce_db_readonly=enforce_db_readonly)

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map service-level errors to API-level (HTTP) errors by their kind.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if not isinstance(exc, ServiceError):
            # Untouched: bubbles up to the Flask handler
            return exc

        message = str(exc)
        if exc.kind is ErrorKind.UNAUTHORIZED:
            return api_errors.Unauthorized(message)
        if exc.kind is ErrorKind.FORBIDDEN:
            return api_errors.Forbidden(message)
        if exc.kind is ErrorKind.NOT_FOUND:
            return api_errors.NotFound(message)
        if exc.kind is ErrorKind.CONFLICT:
            return api_errors.Conflict(message)

        details = {"errors": exc.errors} if isinstance(exc, BadRequestError) and exc.errors else None
        return api_errors.BadRequest(message, details=details)
