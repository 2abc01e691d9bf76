import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models
from app.core.security import CallerSession

logger = logging.getLogger(__name__)

DATABASE_QUERY_ACTION = "database_query"


class AuditLogger:
    """Appends one user_activity_logs row per executed assistant query."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_query(
        self, session: CallerSession, sql_query: str, description: str
    ) -> bool:
        """
        Write the audit row. Only call this after the query ran successfully.

        Returns:
            True when the row was committed. A failed write is rolled back and
            logged, as is a caller or tenant id that is not a UUID.
            The caller still answers the user.
        """
        try:
            entry = models.UserActivityLog(
                user_id=uuid.UUID(session.caller_id),
                tenant_id=uuid.UUID(session.tenant_id) if session.tenant_id else None,
                action_type=DATABASE_QUERY_ACTION,
                details={"query": sql_query, "description": description},
            )
            self.db.add(entry)
            await self.db.commit()
            return True
        except (SQLAlchemyError, TypeError, ValueError) as error:
            await self.db.rollback()
            logger.error(
                f"[User {session.caller_id}] Failed to write audit log for tenant "
                f"{session.tenant_id}: {error}"
            )
            return False
