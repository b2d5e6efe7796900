from typing import List

from paydesk.clients.bank_client import BankClient
from paydesk.context.session_context import SessionContext
from paydesk.schemas import Transfer


async def list_transfers(client: BankClient, context: SessionContext) -> List[Transfer]:
    """
    The user's transfers, newest first (by ``startedAt``). Cached until a new
    transfer is created.
    """
    transfers = await context.cache.get_or_fetch(("transfers", context.user_id), client.get_transfers)
    return sorted(transfers, key=lambda t: t.started_at or 0, reverse=True)
