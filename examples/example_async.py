"""
Example: keeping a Hubspace session alive

Run the setup wizard once to complete the e-mailed code login, then let the
session manager restore and refresh the saved tokens on every start.
"""

import asyncio
import logging

from hubspace_api_sdk import (
    AsyncHubspaceApiClient,
    AsyncSessionManager,
    FileTokenStore,
    OtpRequiredError,
    SetupWizard,
)

USERNAME = "YOUR_HUBSPACE_EMAIL"
PASSWORD = "YOUR_HUBSPACE_PASSWORD"


def first_time_setup(store: FileTokenStore) -> None:
    wizard = SetupWizard(store=store)
    try:
        result = wizard.login(USERNAME, PASSWORD)
        if result.requires_2fa:
            print(result.message)
            code = input("Verification code: ")
            result = wizard.verify_otp(USERNAME, PASSWORD, code)
        print(result.message)
    finally:
        wizard.close()


async def main(store: FileTokenStore) -> None:
    session_manager = AsyncSessionManager()
    session_manager.initialize(USERNAME, PASSWORD, store=store, verbose=True)

    async with session_manager, AsyncHubspaceApiClient(session_manager) as client:
        try:
            account = await client.get("/users/me")
        except OtpRequiredError:
            print("Session expired; run the setup again.")
            return
        print(f"Signed in as {account.get('firstName', USERNAME)}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    token_store = FileTokenStore("hubspace-tokens.json")
    if token_store.load() is None:
        first_time_setup(token_store)
    asyncio.run(main(token_store))
