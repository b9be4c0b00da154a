# bootstrap/__main__.py
"""
Simulate a page load from the command line.

    python -m bootstrap --url "/agency-dashboard?demo=true&role=agency"
    python -m bootstrap --url /dashboard --user alice --email alice@example.com --profile-role employer
    python -m bootstrap --demo-login agency
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from bootstrap.bootstrap import bootstrap_client, load_config
from bootstrap.exceptions import BootstrapError
from domain.session import Identity
from infrastructure.identity.memory_profile_store import InMemoryProfileStore
from infrastructure.identity.memory_provider import InMemoryIdentityProvider
from infrastructure.storage.key_value_storage import JsonFileKeyValueStorage, MemoryKeyValueStorage

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Job board client core - page load simulator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s --url "/agency-dashboard?demo=true&role=agency"
  %(prog)s --url /employer-dashboard --user u1 --profile-role employer
  %(prog)s --url /dashboard --env development --storage runtime/storage.json
        ''',
    )
    parser.add_argument('--url', '-u', default='/', help='Page address to load (path and query string)')
    parser.add_argument('--env', '-e', default=None, help='Configuration environment (configs/<env>/)')
    parser.add_argument('--user', default=None, help='Signed-in user id; omit for a visitor')
    parser.add_argument('--email', default=None, help='E-mail of the signed-in user')
    parser.add_argument('--profile-role', default=None, help='Role stored on the user profile')
    parser.add_argument('--storage', default=None, help='JSON file used as durable storage (default: in memory)')
    parser.add_argument('--demo-login', metavar='ROLE', default=None, help='Run the one-click demo login for ROLE first')
    parser.add_argument('--timeout', '-t', type=float, default=None, help='Session timeout override in seconds')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser.parse_args(argv)


async def main(argv: Optional[list] = None) -> int:
    args = parse_args(argv)
    overrides = {'session': {'subscription_timeout_seconds': args.timeout}} if args.timeout else None
    config = load_config(env=args.env, overrides=overrides)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, config.logging.level),
        format=config.logging.format,
    )

    storage = JsonFileKeyValueStorage(args.storage) if args.storage else MemoryKeyValueStorage()
    user = Identity(uid=args.user, email=args.email) if args.user else None
    provider = InMemoryIdentityProvider(current_user=user)
    profiles = {args.user: {'role': args.profile_role}} if args.user and args.profile_role else {}
    profile_store = InMemoryProfileStore(profiles)

    url = args.url
    if args.demo_login:
        setup = await bootstrap_client('/', provider=provider, profile_store=profile_store, storage=storage, config=config)
        if setup.demo_login is None or not setup.registry.is_ready('demo_login'):
            print(f'✗ Demo login unavailable: {setup.error}')
            return 1
        url = await setup.demo_login.handle_demo_login(args.demo_login, navigate=False)
        await setup.shutdown()
        print(f'Demo login for {args.demo_login} -> {url}')

    runtime = await bootstrap_client(url, provider=provider, profile_store=profile_store, storage=storage, config=config)
    if runtime.error is not None and not runtime.guard_ready:
        print(f'\n✗ Bootstrap failed: {runtime.error}')
        return 1

    decision = await runtime.wait_for_access_decision(timeout=config.session.subscription_timeout_seconds + 1)
    await runtime.shutdown()

    print(f'\n=== Page load: {runtime.location.to_url()} ===')
    if runtime.error is not None:
        print(f'⚠ Degraded: {runtime.error}')
    if decision is not None:
        print(f"Access: {'✓ granted' if decision.allowed else '✗ denied'} ({decision.reason})")
        if decision.redirect_to:
            print(f'Redirect: {decision.redirect_to}')
    print(json.dumps(runtime.summary(), indent=2, default=str))
    return 0 if decision is not None and decision.allowed else 2


def run(argv: Optional[list] = None) -> int:
    try:
        return asyncio.run(main(argv))
    except KeyboardInterrupt:
        print('\nInterrupted by user')
        return 130
    except BootstrapError as e:
        logger.critical(f'Fatal configuration error: {e}', exc_info=True)
        print(f'✗ FATAL: {e}')
        return 1


if __name__ == '__main__':
    sys.exit(run())
