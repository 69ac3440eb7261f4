"""Database queries for push device tokens."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import device_tokens


async def get_tokens_for_users(
    conn: AsyncConnection,
    user_ids: list[int],
) -> list[str]:
    """Get every registered device token of the given users (deduplicated)."""
    if not user_ids:
        return []
    result = await conn.execute(
        select(device_tokens.c.token)
        .where(device_tokens.c.user_id.in_(user_ids))
        .order_by(device_tokens.c.token_id)
    )
    return list(dict.fromkeys(result.scalars().all()))


async def delete_device_token(conn: AsyncConnection, token: str) -> int:
    """
    Delete a token for whichever user registered it.

    Returns:
        Number of rows deleted
    """
    result = await conn.execute(
        delete(device_tokens).where(device_tokens.c.token == token)
    )
    return result.rowcount
