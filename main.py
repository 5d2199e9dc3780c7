import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from dal.market_dal import MarketDAL
from dal.user_dal import UserDAL
from dal.wallet_dal import WalletDAL
from routes.event_route import router as event_router
from routes.image_route import router as image_router
from routes.stats_route import router as stats_router
from services.chain.chain_gateway import ChainGateway
from services.chain.epoch_gate import EpochGateReader
from services.conversation.account_handlers import AccountHandlers
from services.conversation.bet_flow import BetFlow
from services.conversation.create_market_wizard import CreateMarketWizard
from services.conversation.dispatcher import ConversationDispatcher
from services.conversation.market_browser import MarketBrowser
from services.conversation.market_cache import MarketReferenceCache
from services.conversation.market_commit import MarketCommitter
from services.conversation.session_store import SessionStore
from services.conversation.withdraw_flow import WithdrawFlow
from services.image_host import LocalImageHost
from services.rpc.call_throttler import CallThrottler
from services.rpc.provider_failover import ProviderFailoverExecutor
from services.transport import BufferedTransport
from services.wallet_service import WalletService
from utils.database_init import AsyncDatabaseInitializer
from utils.session_sweeper import SessionSweeper
from utils.settings import Settings
from utils.wallet_crypto import SecretCipher

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - settings from the environment (and `.env`)
      - the SQLite database at DATABASE_DIR/app.db (existing rows are kept)
      - the RPC throttler, failover executor and chain gateway
      - the session store, market reference cache and conversation flows
    attach them to `app.state`, and run the session sweeper until shutdown.
    """
    settings = Settings.from_env()
    app.state.settings = settings

    db_initializer = AsyncDatabaseInitializer(settings.database_dir)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    throttler = CallThrottler(settings.throttle_limit)
    executor = ProviderFailoverExecutor(
        settings.rpc_endpoints, throttler, backoff_seconds=settings.failover_backoff_seconds
    )
    gateway = ChainGateway(
        executor,
        chain_id=settings.chain_id,
        usdc_address=settings.usdc_address,
        factory_address=settings.factory_address,
        epoch_manager_address=settings.epoch_manager_address,
        max_attempts=settings.failover_attempts,
    )
    epoch_gate = EpochGateReader(gateway)
    app.state.executor = executor
    app.state.gateway = gateway

    sessions = SessionStore(settings.session_ttl_seconds)
    market_cache = MarketReferenceCache(settings.market_cache_ceiling)
    transport = BufferedTransport()
    image_host = LocalImageHost(settings.image_dir, settings.public_base_url)
    markets = MarketDAL(db_initializer)
    wallets = WalletService(UserDAL(db_initializer), WalletDAL(db_initializer), SecretCipher(settings.wallet_encryption_key))

    committer = MarketCommitter(
        sessions, epoch_gate, wallets, gateway, markets, min_gas_eth=settings.min_gas_eth
    )
    dispatcher = ConversationDispatcher(
        sessions,
        transport,
        CreateMarketWizard(
            sessions, transport, image_host, wallets, gateway, committer, min_gas_eth=settings.min_gas_eth
        ),
        BetFlow(sessions, transport, wallets, gateway, markets, market_cache, min_gas_eth=settings.min_gas_eth),
        WithdrawFlow(sessions, transport, wallets, gateway),
        MarketBrowser(transport, markets, market_cache, epoch_gate),
        AccountHandlers(sessions, transport, wallets, gateway, markets),
        ack_timeout=settings.ack_timeout_seconds,
        handler_timeout=settings.handler_timeout_seconds,
    )
    app.state.sessions = sessions
    app.state.market_cache = market_cache
    app.state.transport = transport
    app.state.image_host = image_host
    app.state.dispatcher = dispatcher

    sweeper = SessionSweeper(sessions, market_cache, settings.sweep_interval_seconds)
    sweeper_task = asyncio.create_task(sweeper.run_periodic())
    logger.info("Bot ready on %s (RPC %s)", settings.public_base_url, executor.current_endpoint)

    try:
        yield
    finally:
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            pass


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies DB initializer and chain gateway presence.
        """
        state = request.app.state
        has_db = hasattr(state, "db_initializer")
        has_chain = getattr(state, "gateway", None) is not None
        return {
            "ok": True,
            "db_initialized": has_db,
            "chain_available": has_chain,
            "rpc_endpoint": state.executor.current_endpoint if has_chain else None,
        }

    # Register application routers
    app.include_router(event_router)
    app.include_router(image_router)
    app.include_router(stats_router)

    return app


app = create_app()
