from abc import ABC
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppError, ConflictError, DatabaseError
from app.services.realtime.dispatch_events import DispatchEvent, DispatchEventHub, dispatch_hub
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for tenant-scoped application services.

    Provides a standardized execution flow with validation and error
    handling, a transactional unit of work, and realtime notifications
    that are published only after the unit of work commits.

    Public service methods call ``execute("<action>", ...)``; the action is
    routed to the ``_<action>`` coroutine on the subclass.
    """

    def __init__(
        self,
        session: AsyncSession,
        tenant_id: UUID,
        event_hub: Optional[DispatchEventHub] = None,
    ):
        """Initialize the service.

        Args:
            session: Database session for the request
            tenant_id: Tenant every repository of this service is bound to
            event_hub: Realtime hub notified after successful commits
        """
        self.session = session
        self.tenant_id = tenant_id
        self.event_hub = event_hub or dispatch_hub
        self.logger = LOGGER
        self._pending_events: List[DispatchEvent] = []

    async def execute(self, action: str, **kwargs) -> Any:
        """Execute the service logic.

        This template method handles:
        1. Input validation
        2. Core logic execution
        3. Standardized error handling

        Raises:
            AppError: If execution fails
        """
        try:
            self.validate(action, **kwargs)
            return await self.run(action, **kwargs)

        except AppError:
            raise

        except IntegrityError as e:
            self.logger.warning(
                f"Integrity violation in {action}: {e.orig}",
                extra={"service": self.__class__.__name__, "tenant_id": str(self.tenant_id)},
            )
            raise ConflictError("Request conflicts with existing data", original_error=e)

        except SQLAlchemyError as e:
            self.logger.error(
                f"Database error in {action}: {str(e)}",
                exc_info=True,
                extra={"service": self.__class__.__name__},
            )
            raise DatabaseError(f"Database operation failed: {action}", original_error=e)

        except Exception as e:
            self.logger.error(
                f"Service execution failed: {str(e)}",
                exc_info=True,
                extra={"service": self.__class__.__name__},
            )
            raise AppError(f"Service execution failed: {str(e)}", original_error=e)

    def validate(self, action: str, **kwargs) -> None:
        """Validate service input.

        Override this method to implement custom validation logic.

        Raises:
            ValidationError: If input is invalid
        """
        pass

    async def run(self, action: str, **kwargs) -> Any:
        """Route an action to its ``_<action>`` handler."""
        handler = getattr(self, f"_{action}", None)
        if handler is None:
            raise AppError(f"Unknown action: {action}")
        return await handler(**kwargs)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Unit of work: commit on success, roll back on any error.

        Events queued with ``emit`` are published after the commit and
        dropped on rollback.
        """
        try:
            yield self.session
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            self._pending_events.clear()
            raise
        await self._flush_events()

    def emit(self, event_type: str, load: Any = None, **data) -> None:
        """Queue a dispatch board notification for after commit."""
        self._pending_events.append(
            DispatchEvent(
                type=event_type,
                tenant_id=self.tenant_id,
                load_id=getattr(load, "id", None),
                load_number=getattr(load, "load_number", None),
                status=getattr(load, "status", None),
                data=data,
            )
        )

    async def _flush_events(self) -> None:
        events, self._pending_events = self._pending_events, []
        for event in events:
            await self.event_hub.publish(event)


def page_envelope(items: List[Any], total: int, page: int, limit: int) -> Dict[str, Any]:
    """Standard pagination envelope ``{data, total, page, limit, totalPages}``."""
    return {
        "data": items,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": (total + limit - 1) // limit if limit else 0,
    }
