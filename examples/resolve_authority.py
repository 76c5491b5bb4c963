import asyncio
import contextlib
import os
import sys

# Add src to path for running directly
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from anyio import create_task_group

from coreason_authority import AuthorityContext, AuthorityFactory, CoreasonAuthorityConfig, CoreasonAuthorityError


async def main() -> None:
    """
    Demonstrates authority classification and concurrent discovery.
    Concurrent resolutions of the same authority share a single discovery request.
    """
    print(">>> Starting authority resolution example")

    config = CoreasonAuthorityConfig(
        authority="https://login.microsoftonline.com/common",
        http_timeout=5.0,
    )

    async with AuthorityFactory.from_config(config, context=AuthorityContext()) as factory:
        authority = factory.create_configured_instance()
        if authority is None:
            print(">>> No authority configured")
            return

        print(f">>> {type(authority).__name__}: {authority.canonical_authority}")

        failed = False
        try:
            async with create_task_group() as tg:
                for _ in range(3):
                    tg.start_soon(factory.resolve_authority, authority)
        except* CoreasonAuthorityError as eg:
            print(f">>> Discovery failed: {eg.exceptions[0]}")
            failed = True
        if failed:
            return

        print(f">>> Authorization endpoint: {authority.authorization_endpoint}")
        print(f">>> End-session endpoint: {authority.end_session_endpoint}")
        print(f">>> Issuer: {authority.issuer}")


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())
