import json
import logging
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import QueryExecutionError

# -----------------------------------------------------------------------------
# EXECUTOR MODULE
# Purpose: run an approved query through the database's execute_sql() function.
# Why: execute_sql() refuses mutating statements and returns rows as JSON,
# so the app never executes model-written SQL directly.
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)

EXECUTE_SQL = text("SELECT execute_sql(:query_text) AS result").columns(result=JSONB)


class QueryExecutor:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def run(self, sql_query: str) -> List[Dict[str, Any]]:
        """
        Execute an approved read query.

        Args:
            sql_query: Query text that already passed the SQL guard.

        Returns:
            Result rows as dicts, in the order the database returned them.

        Raises:
            QueryExecutionError: the database function reported an error, or the
                call itself failed. No partial rows are returned.
        """
        try:
            result = await self.db.execute(EXECUTE_SQL, {"query_text": sql_query})
            payload = result.scalar_one()
        except SQLAlchemyError as error:
            await self.db.rollback()
            logger.error(f"execute_sql call failed: {error}")
            raise QueryExecutionError(f"Database query error: {error}")

        # Some drivers hand jsonb back as text
        if isinstance(payload, str):
            payload = json.loads(payload)

        if payload is None:
            return []

        if isinstance(payload, dict) and "error" in payload:
            logger.error(
                f"execute_sql rejected query ({payload.get('detail')}): {payload['error']}"
            )
            raise QueryExecutionError(f"Database query error: {payload['error']}")

        if not isinstance(payload, list):
            raise QueryExecutionError("Database query error: unexpected result shape")

        return [dict(row) if isinstance(row, dict) else {"value": row} for row in payload]
