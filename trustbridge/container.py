"""
Process wiring

Builds every collaborator once from ``Settings`` and hands them around by
reference. The HTTP app and the CLI both start from ``build_container``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from .cache import RateCache
from .config import Settings
from .core.chat import ChatRouter
from .core.transfer import SessionRegistry, TransferWizard
from .providers import CoinMarketCapProvider, FreeCurrencyProvider
from .services.auth import AuthService
from .services.backend import BackendClient
from .services.exchange_rate import ExchangeRateResolver
from .services.messaging import HttpMessenger, LoggingMessenger, Messenger
from .services.polling import IntervalScheduler, StatusPoller
from .services.webhook import WebhookVerifier

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: Settings
    cache: RateCache
    fiat_provider: FreeCurrencyProvider
    crypto_provider: CoinMarketCapProvider
    resolver: ExchangeRateResolver
    backend: BackendClient
    auth: AuthService
    messenger: Messenger
    poller: StatusPoller
    sessions: SessionRegistry
    wizard: TransferWizard
    router: ChatRouter
    webhook_verifier: WebhookVerifier
    cache_sweeper: IntervalScheduler
    _closed: bool = field(default=False, repr=False)

    def start(self) -> None:
        """Start background loops. Needs a running event loop."""
        self.cache_sweeper.start()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.poller.stop_all()
        self.cache_sweeper.stop()
        self.sessions.clear()
        await asyncio.gather(
            self.backend.close(),
            self.messenger.close(),
            return_exceptions=True,
        )
        logger.info("Container closed")


def build_container(settings: Settings, messenger: Optional[Messenger] = None) -> Container:
    cache = RateCache(ttl_seconds=settings.rate_cache_ttl_seconds)
    fiat_provider = FreeCurrencyProvider(
        settings.freecurrency_api_key,
        cache_ttl_seconds=settings.rate_cache_ttl_seconds,
        timeout_s=settings.provider_timeout_seconds,
    )
    crypto_provider = CoinMarketCapProvider(
        settings.cmc_api_key,
        timeout_s=settings.provider_timeout_seconds,
    )
    resolver = ExchangeRateResolver(
        cache,
        fiat_provider,
        crypto_provider,
        supported_fiat=settings.supported_fiat,
        inverse_pairs=settings.inverse_quote_pairs,
        static_fallbacks=settings.fallback_rate_table(),
    )

    backend = BackendClient(settings.backend_api_url, timeout=settings.backend_api_timeout_seconds)
    auth = AuthService(
        backend,
        session_ttl_seconds=settings.auth_session_ttl_seconds,
        expiry_buffer_seconds=settings.auth_expiry_buffer_seconds,
    )

    if messenger is None:
        if settings.chat_gateway_url:
            messenger = HttpMessenger(settings.chat_gateway_url)
        else:
            logger.warning("CHAT_GATEWAY_URL not set - outbound notifications are only logged")
            messenger = LoggingMessenger()

    poller = StatusPoller(
        backend,
        messenger,
        poll_interval_seconds=settings.poll_interval_seconds,
        max_duration_seconds=settings.max_poll_duration_seconds,
        max_poll_count=settings.max_poll_count,
        max_error_polls=settings.max_poll_errors,
    )

    sessions = SessionRegistry()
    wizard = TransferWizard(
        resolver,
        backend,
        auth,
        poller,
        fee_rate=settings.fee_percentage,
        supported_fiat=settings.supported_fiat,
        wallet_tokens=settings.wallet_tokens,
        recipient_currencies=settings.recipient_currencies,
    )
    router = ChatRouter(
        wizard,
        sessions,
        resolver,
        backend,
        auth,
        messenger,
        crypto_provider,
        poller=poller,
        display_pairs=[(token, settings.settlement_fiat) for token in settings.wallet_tokens],
    )

    async def sweep_rates() -> None:
        # Stale entries stay usable as a fallback for a while after expiry
        removed = resolver.sweep_expired(max_age=settings.rate_cache_ttl_seconds * 12)
        if removed:
            logger.info("Purged %d expired rate(s)", len(removed))

    return Container(
        settings=settings,
        cache=cache,
        fiat_provider=fiat_provider,
        crypto_provider=crypto_provider,
        resolver=resolver,
        backend=backend,
        auth=auth,
        messenger=messenger,
        poller=poller,
        sessions=sessions,
        wizard=wizard,
        router=router,
        webhook_verifier=WebhookVerifier(settings.webhook_secret, production=settings.is_production),
        cache_sweeper=IntervalScheduler(settings.rate_cache_sweep_seconds, sweep_rates, name="rate-cache-sweep"),
    )
