"""Fixed Hubspace endpoints."""

ACCOUNT_BASE_URL = "https://accounts.hubspaceconnect.com/auth/realms/thd"
TOKEN_PATH = "/protocol/openid-connect/token"
CLIENT_ID = "hubspace_android"

API_BASE_URL = "https://api2.afero.net/v1"
