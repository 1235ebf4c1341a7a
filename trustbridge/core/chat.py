"""
Chat Command Router

Entry point for every inbound chat message. An active transfer wizard gets
first claim on the text; otherwise the text is matched against the bot's
commands. Messages from one chat are handled strictly in arrival order.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..errors import BackendError
from ..providers.coinmarketcap import CoinMarketCapProvider
from ..services.auth import AuthService, chat_id_to_number
from ..services.backend import BackendClient
from ..services.exchange_rate import ExchangeRateResolver, RateSource
from ..services.messaging import Messenger
from ..services.polling import StatusPoller
from .transfer import ConversationSession, SessionRegistry, TransferWizard, WizardReply

GREETINGS = frozenset({"hi", "hello", "hey"})
AFFIRMATIVE = frozenset({"yes", "y"})
NEGATIVE = frozenset({"no", "n"})

WELCOME = (
    "👋 Hello! Welcome to TrustBridge! 🌉\n"
    "Your trusted partner to send money across different countries faster using blockchain technology.\n\n"
    '🚀 Ready to transfer money? Simply type "transfer" to get started!\n\n'
    "📋 Available commands:\n"
    '• Type "transfer" - Start a money transfer\n'
    '• Type "rates" - View current exchange rates\n'
    '• Type "help" - Get help and support'
)

INTERRUPT_QUESTION = (
    "⚠️ You are currently in the middle of a transfer process.\n\n"
    "Are you sure you want to cancel your current transfer and start over?\n\n"
    "📝 Please respond:\n"
    '• Type "yes" - To cancel current transfer\n'
    '• Type "no" - To continue your transfer'
)

ALREADY_ACTIVE = (
    "⚠️ You already have an active transfer process.\n\n"
    "Would you like to:\n"
    "• Continue your current transfer - just respond to the previous question\n"
    '• Start a new transfer - type "yes" to cancel current one'
)

INTERRUPT_CANCELLED = (
    "✅ Transfer cancelled.\n\n"
    "👋 Welcome back! Ready to start fresh?\n"
    '• Type "transfer" - Start money transfer\n'
    '• Type "history" - View transaction history\n'
    '• Type "help" - Get help and support'
)

INTERRUPT_CONTINUE = (
    "✅ Continuing with your transfer. Please continue where you left off.\n\n"
    '💡 Type "back" if you need to go to the previous step.'
)

HELP = (
    "🆘 TrustBridge Help & Support\n\n"
    "📋 Available commands:\n"
    '• Type "transfer" - Start a transfer\n'
    '• Type "rates" - View current exchange rates\n'
    '• Type "refresh" - Force refresh exchange rates\n'
    '• Type "history" - View your recent transactions\n'
    '• Type "test" - Test the crypto rate provider\n'
    '• Type "hi" or "hello" - Get welcome message\n\n'
    "💸 Transfer Process:\n"
    "1. Payment method (WALLET or MASTERCARD)\n"
    "2. Recipient name\n"
    "3. Recipient currency\n"
    "4. Bank information\n"
    "5. Account number\n"
    "6. Your currency (and card details for MASTERCARD)\n"
    "7. Transfer amount\n"
    "8. Confirmation\n\n"
    '💡 Type "back" at any step to return to the previous one.\n\n'
    "📞 Need more help? Contact our support team!"
)

UNKNOWN = (
    "🤔 I didn't understand that command.\n\n"
    "💡 Here are some things you can try:\n"
    '• "transfer" - Start a money transfer\n'
    '• "rates" - Check current exchange rates\n'
    '• "help" - See all available commands\n\n'
    'Need assistance? Type "help" for the full command list.'
)

CACHE_CLEARED = (
    "🗑️ Exchange rate cache cleared!\n\n"
    "Next rate requests will fetch fresh data from APIs.\n"
    '💡 Type "rates" to fetch new rates'
)


def _format_rate(rate: float) -> str:
    return f"{rate:,.8f}".rstrip("0").rstrip(".") if rate < 1 else f"{rate:,.2f}"


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


class ChatRouter:
    """Routes chat text to the transfer wizard or a bot command."""

    def __init__(
        self,
        wizard: TransferWizard,
        registry: SessionRegistry,
        resolver: ExchangeRateResolver,
        backend: BackendClient,
        auth: AuthService,
        messenger: Messenger,
        crypto_provider: CoinMarketCapProvider,
        *,
        poller: Optional[StatusPoller] = None,
        display_pairs: Sequence[Tuple[str, str]] = (("USDT", "IDR"),),
        history_limit: int = 10,
        logger: Optional[logging.Logger] = None,
    ):
        self.wizard = wizard
        self.registry = registry
        self.resolver = resolver
        self.backend = backend
        self.auth = auth
        self.messenger = messenger
        self.crypto_provider = crypto_provider
        self.poller = poller
        self.display_pairs = [(a.upper(), b.upper()) for a, b in display_pairs]
        self.history_limit = history_limit
        self.logger = logger or logging.getLogger(__name__)

        self._commands = {
            "transfer": self._transfer,
            "help": self._help,
            "rates": self._rates,
            "refresh": self._refresh,
            "clear": self._clear,
            "debug": self._debug,
            "test": self._test,
            "history": self._history,
        }

    async def handle_message(self, chat_id: str, text: str) -> List[str]:
        """Handle one inbound message and return the replies for it."""
        async with self.registry.lock(chat_id):
            session = self.registry.get(chat_id)
            self.logger.info("Received message from %s", chat_id)
            return await self._route(session, text)

    async def dispatch(self, chat_id: str, text: str) -> List[str]:
        """Handle a message and deliver the replies through the messenger."""
        replies = await self.handle_message(chat_id, text)
        for reply in replies:
            await self.messenger.send_message(chat_id, reply)
        return replies

    async def _route(self, session: ConversationSession, text: str) -> List[str]:
        command = text.strip().lower()

        if session.active:
            if session.pending_interrupt:
                session.pending_interrupt = False
                if command in AFFIRMATIVE:
                    self.wizard.cancel_session(session)
                    return [INTERRUPT_CANCELLED]
                if command in NEGATIVE:
                    return [INTERRUPT_CONTINUE]
            if command in GREETINGS or command == "transfer":
                session.pending_interrupt = True
                return [INTERRUPT_QUESTION if command in GREETINGS else ALREADY_ACTIVE]
            reply = await self.wizard.handle(session, text)
            return reply.messages

        if command in GREETINGS:
            return [WELCOME]
        handler = self._commands.get(command)
        if handler is None:
            return [UNKNOWN]
        return await handler(session)

    # ---------------------------
    # Commands
    # ---------------------------
    async def _transfer(self, session: ConversationSession) -> List[str]:
        reply: WizardReply = self.wizard.start(session)
        return reply.messages

    async def _help(self, session: ConversationSession) -> List[str]:
        return [HELP]

    async def _rates(self, session: ConversationSession) -> List[str]:
        snapshot = await self.resolver.current_rates(self.display_pairs)
        lines = ["💹 Current Exchange Rates", ""]
        for entry in snapshot:
            degraded = entry["degraded"]
            status = "🟡 Using Fallback Rates" if degraded else "🟢 Live from APIs"
            cache_line = f"🔄 Cached ({entry['cacheAge']})" if entry["cached"] else "🆕 Fresh from API"
            lines += [
                f"🪙 {entry['from']} → {entry['to']}",
                f"Rate: {_format_rate(entry['rate'])}",
                status,
                cache_line,
                "",
            ]
        lines += [
            f"⏰ Updated: {_timestamp()}",
            "",
            "💡 Commands:",
            '• "refresh" - Force fresh rates',
            '• "transfer" - Start money transfer',
        ]
        return ["\n".join(lines)]

    async def _refresh(self, session: ConversationSession) -> List[str]:
        results = [await self.resolver.force_refresh(a, b) for a, b in self.display_pairs]
        live = [result for result in results if not result.degraded]
        if not live:
            return [
                "❌ Failed to refresh rates: all rate providers are unavailable.\n\n"
                '🔄 Try again later or use "rates" for current rates'
            ]
        lines = ["✅ Exchange Rates Refreshed!", "", "🆕 Fresh from APIs:"]
        for result in results:
            marker = " (fallback)" if result.degraded else ""
            lines.append(f"🪙 {result.from_currency} → {result.to_currency}: {_format_rate(result.rate)}{marker}")
        lines += ["", f"⏰ Updated: {_timestamp()}", "", '💡 Type "rates" to see updated rates']
        return ["\n".join(lines)]

    async def _clear(self, session: ConversationSession) -> List[str]:
        self.resolver.clear_cache()
        self.logger.info("Exchange rate cache cleared by %s", session.chat_id)
        return [CACHE_CLEARED]

    async def _debug(self, session: ConversationSession) -> List[str]:
        info: Dict[str, Any] = {
            "rateCache": self.resolver.cache_stats(),
            "activeTransfers": self.registry.active_count(),
        }
        if self.poller is not None:
            info["polling"] = {
                "active": self.poller.active_count,
                "transfers": self.poller.active_transfers(),
            }
        return [
            "🔧 Debug Information:\n\n"
            f"📊 Cache Stats:\n{json.dumps(info, indent=2)}\n\n"
            "🔧 Test Commands:\n"
            '• "test" - Test the crypto rate provider\n'
            '• "clear" - Clear exchange rate cache\n'
            '• "rates" - Show current rates\n'
            '• "refresh" - Force refresh rates'
        ]

    async def _test(self, session: ConversationSession) -> List[str]:
        connection = await self.crypto_provider.test_connection()
        if not connection["success"]:
            return [
                "❌ CoinMarketCap API Test Failed:\n\n"
                f"🔑 Status: {connection['message']}\n\n"
                "💡 If the API key is missing:\n"
                "1. Set CMC_API_KEY in the environment or .env file\n"
                "2. Get a free API key from coinmarketcap.com/api\n"
                "3. Restart the bot after adding the key"
            ]

        pair = self.display_pairs[0]
        result = await self.resolver.resolve(*pair)
        source = "Fallback Rates" if result.degraded else "Live API"
        if result.source in (RateSource.CACHE, RateSource.STALE_CACHE):
            source = f"{source} (cached)"
        return [
            "✅ Exchange Rate API Test Results:\n\n"
            "🔑 API Status: Working ✅\n"
            f"💰 {pair[0]} → {pair[1]}: {_format_rate(result.rate)}\n"
            f"📊 Data Source: {source}\n\n"
            f"⏰ Last Updated: {_timestamp()}\n"
            f"🔄 Cache Status: {self.resolver.cache_stats()['size']} rates cached"
        ]

    async def _history(self, session: ConversationSession) -> List[str]:
        number = chat_id_to_number(session.chat_id)
        try:
            await self.auth.ensure_authenticated(number)
            transactions = await self.backend.get_transaction_history(number, limit=self.history_limit)
        except BackendError as exc:
            self.logger.error("Failed to fetch history for %s: %s", session.chat_id, exc)
            return ["❌ Unable to fetch transaction history. Please try again later."]

        if not transactions:
            return ['📋 Transaction History\n\nNo transactions yet.\n\n💡 Type "transfer" to start your first transfer.']

        lines = ["📋 Transaction History", ""]
        for index, tx in enumerate(transactions[: self.history_limit], start=1):
            amount = tx.get("senderAmount", tx.get("sourceAmount"))
            currency = tx.get("senderCurrency", tx.get("sourceCurrency")) or ""
            target = tx.get("recipientCurrency", tx.get("targetCurrency")) or ""
            lines.append(f"{index}. {tx.get('id', 'N/A')}")
            lines.append(f"   {amount if amount is not None else 'N/A'} {currency} → {target}".rstrip())
            lines.append(f"   Status: {tx.get('status', 'UNKNOWN')}")
            if tx.get("createdAt"):
                lines.append(f"   Created: {tx['createdAt']}")
        lines += ["", '💡 Type "transfer" to start a new transfer']
        return ["\n".join(lines)]
