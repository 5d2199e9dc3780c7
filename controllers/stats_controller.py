from typing import Any, Dict, Optional

from fastapi import HTTPException, Request

from dal.market_dal import MarketDAL
from dal.user_dal import UserDAL


async def get_stats(request: Request, admin_id: Optional[int] = None) -> Dict[str, Any]:
    """Return runtime counters for operators.

    When ADMIN_IDS is configured, `admin_id` must be one of them.
    """
    state = request.app.state
    admins = state.settings.admin_ids
    if admins and admin_id not in admins:
        raise HTTPException(status_code=403, detail="Not an administrator")

    executor = state.executor
    throttler = executor.throttler
    return {
        "sessions": len(state.sessions),
        "market_references": len(state.market_cache),
        "market_reference_counter": state.market_cache.counter,
        "rpc_endpoint": executor.current_endpoint,
        "rpc_index": executor.index,
        "rpc_running": throttler.running,
        "rpc_pending": throttler.pending,
        "users": await UserDAL(state.db_initializer).count_users(),
        "active_markets": await MarketDAL(state.db_initializer).count_active(),
    }
