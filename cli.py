#!/usr/bin/env python3
"""Simple CLI for trying the TrustBridge bot locally"""

import argparse
import asyncio

from trustbridge.config import settings
from trustbridge.container import build_container
from trustbridge.logging_config import setup_logging
from trustbridge.services.messaging import LoggingMessenger


async def cli_chat(chat_id: str):
    """Interactive chat mode. Replies and status updates are printed as they arrive."""
    container = build_container(settings, messenger=LoggingMessenger(echo=True))
    container.start()

    print("🌉 TrustBridge Chat")
    print(f"Chatting as {chat_id}. Type 'exit' to quit, 'hi' to begin.")
    print("-" * 40)

    try:
        while True:
            try:
                # Read in a thread so the status poller keeps ticking
                user_input = (await asyncio.to_thread(input, "\n💬 You: ")).strip()
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye! 👋")
                break

            if user_input.lower() in ["exit", "quit", "q"]:
                print("Goodbye! 👋")
                break
            if not user_input:
                continue

            try:
                await container.router.dispatch(chat_id, user_input)
            except Exception as e:
                print(f"❌ Error: {e}")
    finally:
        await container.close()


async def cli_rate(from_currency: str, to_currency: str):
    """Resolve one exchange rate and show where it came from"""
    container = build_container(settings)
    try:
        result = await container.resolver.resolve(from_currency, to_currency)
    finally:
        await container.close()

    status = "⚠️ degraded" if result.degraded else "✅ live"
    print(f"1 {result.from_currency} = {result.rate:,.8g} {result.to_currency}")
    print(f"Source: {result.source.value} ({status})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TrustBridge CLI")
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Interactive chat mode")
    chat_parser.add_argument("--chat-id", default="6280000000000@c.us", help="Chat identity to use")

    rate_parser = subparsers.add_parser("rate", help="Resolve an exchange rate")
    rate_parser.add_argument("from_currency", help="Currency to convert from (e.g. USDT)")
    rate_parser.add_argument("to_currency", help="Currency to convert to (e.g. IDR)")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging()
    command = args.command.lower()

    if command == "chat":
        asyncio.run(cli_chat(args.chat_id))

    elif command == "rate":
        asyncio.run(cli_rate(args.from_currency, args.to_currency))

    elif command == "serve":
        import uvicorn
        uvicorn.run(
            "trustbridge.main:app",
            host=args.host,
            port=args.port,
            log_level=settings.log_level.lower()
        )

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    main()
