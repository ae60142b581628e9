#!/usr/bin/env python3
"""Simple CLI for testing WallyBot locally"""

import argparse
import asyncio
import time
from typing import List, Optional

import httpx

from wallybot.config import settings
from wallybot.core.webhook import WebhookController
from wallybot.logging_config import setup_logging
from wallybot.providers.llm import get_llm_provider
from wallybot.providers.nodit import NoditProvider
from wallybot.providers.twilio import TwilioWhatsAppProvider, compute_signature
from wallybot.services.intent_service import IntentService

DEFAULT_BASE_URL = f"http://localhost:{settings.port}"
DEFAULT_SENDER = "whatsapp:+1234567890"

SAMPLE_MESSAGES = [
    ("Help Command", "help"),
    ("Wallet Balance Query", "Check balance for 0x742d35Cc4Bf86C6D8Ba9352532Fd1e42a5D9e69B"),
    ("Token Info Query", "What is USDC token?"),
    ("Price Query", "What's the price of ETH?"),
    ("NFT Details Query", "Show NFT details for 0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D #1234"),
]


def build_controller() -> WebhookController:
    intent_service = IntentService(get_llm_provider(settings))
    return WebhookController(NoditProvider(settings), TwilioWhatsAppProvider(settings), intent_service)


async def cli_ask(message: str):
    """Answer a single message locally without sending anything"""
    controller = build_controller()
    try:
        parsed = await controller.intent_service.parse_user_intent(message)
        print(f"🧭 Intent: {parsed.intent.value} (confidence {parsed.confidence:.2f})")
        if parsed.parameters:
            params = ", ".join(f"{k}={v}" for k, v in parsed.parameters.items())
            print(f"   Parameters: {params}")
        print("-" * 40)
        print(await controller.process_user_request(parsed))
    finally:
        await controller.intent_service.close()


async def cli_chat():
    """Interactive chat mode"""
    print("🪙 WallyBot Chat")
    print("Type 'exit' to quit")
    print("-" * 40)

    controller = build_controller()
    try:
        while True:
            try:
                user_input = input("\n💬 You: ").strip()
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye! 👋")
                break

            if user_input.lower() in ["exit", "quit", "q"]:
                print("Goodbye! 👋")
                break
            if not user_input:
                continue

            print(f"🤖 WallyBot:\n{await controller.build_reply(user_input)}")
    finally:
        await controller.intent_service.close()


async def cli_webhook(base_url: str, messages: Optional[List[str]] = None, sender: str = DEFAULT_SENDER):
    """Post signed sample messages to a running server"""
    url = f"{base_url.rstrip('/')}/webhook"
    samples = [(f"Message {i}", body) for i, body in enumerate(messages, 1)] if messages else SAMPLE_MESSAGES

    print("🪙 WallyBot Local Testing")
    print("========================")

    async with httpx.AsyncClient(timeout=30) as client:
        try:
            health = await client.get(f"{base_url.rstrip('/')}/health")
            health.raise_for_status()
            data = health.json()
            print(f"\n🏥 Health: {data.get('status')} (uptime {data.get('uptime')}s)")
        except httpx.HTTPError as e:
            print(f"❌ Health Check Failed: {e}")
            return

        for name, body in samples:
            form = {"Body": body, "From": sender, "MessageSid": f"SM{int(time.time() * 1000)}"}
            signature = compute_signature(settings.twilio_auth_token, settings.webhook_url or url, form)

            print(f"\n🧪 Testing: {name}")
            print(f'📱 Message: "{body}"')
            try:
                response = await client.post(url, data=form, headers={"X-Twilio-Signature": signature})
            except httpx.HTTPError as e:
                print(f"❌ Error: {e}")
                continue

            marker = "✅" if response.status_code == 200 else "❌"
            print(f"{marker} Status: {response.status_code}")
            print(f"📤 Response: {response.text}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="WallyBot CLI")
    subparsers = parser.add_subparsers(dest="command")

    ask_parser = subparsers.add_parser("ask", help="Answer a message locally (nothing is sent)")
    ask_parser.add_argument("message", nargs="+", help="Message text")

    subparsers.add_parser("chat", help="Interactive chat mode")

    webhook_parser = subparsers.add_parser("webhook", help="Post signed test messages to a running server")
    webhook_parser.add_argument("messages", nargs="*", help="Message bodies (default: built-in samples)")
    webhook_parser.add_argument("--url", default=DEFAULT_BASE_URL, help=f"Server base URL (default: {DEFAULT_BASE_URL})")
    webhook_parser.add_argument("--from", dest="sender", default=DEFAULT_SENDER, help="Sender id")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(log_level="WARNING")
    command = args.command.lower()

    if command == "ask":
        await cli_ask(" ".join(args.message))

    elif command == "chat":
        await cli_chat()

    elif command == "webhook":
        await cli_webhook(args.url, args.messages, args.sender)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    asyncio.run(main())
