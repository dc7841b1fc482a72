"""
Authentication module — delegated device-code sign-in or certificate app-only auth.
Uses MSAL for token acquisition against Microsoft Identity Platform.

The Power Platform admin surface spans several token audiences (BAP, Flow,
Power BI, Graph, each Dataverse instance). One sign-in is reused for all of
them through MSAL's in-memory token cache.
"""

from __future__ import annotations

import base64
import binascii
import getpass
import logging
from pathlib import Path
from typing import Optional

import msal
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, pkcs12

from ..config import AuthConfig

logger = logging.getLogger("powerplatform_assessment.auth")

AUTHORITY_URL = "https://login.microsoftonline.com/{tenant}"


class AuthenticationError(Exception):
    """Raised when a token cannot be acquired."""
    pass


def read_pfx(path: str | Path) -> bytes:
    """PKCS#12 bytes from a binary .pfx/.p12 file or its base64 text export."""
    raw = Path(path).read_bytes()
    try:
        return base64.b64decode(b"".join(raw.split()), validate=True)
    except binascii.Error:
        return raw


def certificate_credential(pfx: bytes, password: str = "") -> dict:
    """MSAL client_credential (SHA-1 thumbprint and PEM private key) for a PFX."""
    private_key, certificate, _ = pkcs12.load_key_and_certificates(
        pfx, password.encode("utf-8") if password else None
    )
    if private_key is None or certificate is None:
        raise ValueError("PFX does not contain a private key and certificate")
    return {
        "thumbprint": certificate.fingerprint(hashes.SHA1()).hex(),
        "private_key": private_key.private_bytes(
            Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
        ).decode("utf-8"),
    }


class Authenticator:
    """
    Token source for the admin API clients.

    acquire_token(scope) is passed to each client as its token provider, so
    every API host gets a token for its own audience from the same sign-in.
    """

    def __init__(self, config: AuthConfig):
        self.config = config
        self._app = None
        self._tenant_id: Optional[str] = None

    def acquire_token(self, scope: str) -> str:
        """Acquire an access token for one resource scope."""
        if self.config.mode == "certificate":
            result = self._certificate_app().acquire_token_for_client(scopes=[scope])
        elif self.config.mode == "delegated":
            result = self._delegated_token(scope)
        else:
            raise AuthenticationError(f"Unknown auth mode: {self.config.mode}")
        return self._token_from_result(result, scope)

    @property
    def tenant_id(self) -> Optional[str]:
        """Tenant id of the signed-in identity, once known."""
        return self._tenant_id

    def _certificate_app(self):
        if self._app is not None:
            return self._app

        cert_config = self.config.certificate
        if not cert_config:
            raise AuthenticationError("Certificate mode selected but no certificate settings were given.")

        try:
            pfx = read_pfx(cert_config.certificate_path)
        except FileNotFoundError as e:
            raise AuthenticationError(f"Certificate file not found: {cert_config.certificate_path}") from e
        except OSError as e:
            raise AuthenticationError(f"Cannot read certificate {cert_config.certificate_path}: {e}") from e

        password = cert_config.certificate_password or getpass.getpass("Enter the certificate password: ")
        try:
            credential = certificate_credential(pfx, password)
        except ValueError as e:
            raise AuthenticationError(f"Failed to load certificate: {e}") from e
        logger.info(f"Certificate loaded. Thumbprint: {credential['thumbprint']}")

        self._app = msal.ConfidentialClientApplication(
            client_id=cert_config.client_id,
            authority=AUTHORITY_URL.format(tenant=cert_config.tenant_id),
            client_credential=credential,
        )
        self._tenant_id = cert_config.tenant_id
        return self._app

    def _delegated_token(self, scope: str) -> dict:
        """Silent token for the signed-in account, else a device-code sign-in."""
        if self._app is None:
            self._app = msal.PublicClientApplication(
                client_id=self.config.delegated.client_id,
                authority=AUTHORITY_URL.format(tenant=self.config.delegated.tenant_id),
            )

        accounts = self._app.get_accounts()
        if accounts:
            result = self._app.acquire_token_silent([scope], account=accounts[0])
            if result and "access_token" in result:
                return result
            logger.debug(f"No cached token for {scope}, falling back to device code")

        flow = self._app.initiate_device_flow(scopes=[scope])
        if "user_code" not in flow:
            raise AuthenticationError(
                f"Device code flow failed: {flow.get('error_description', 'Unknown')}"
            )
        prompt = flow.get("message") or (
            f"To sign in, open {flow['verification_uri']} and enter the code {flow['user_code']}"
        )
        print(f"\n{'=' * 60}\n  {prompt}\n{'=' * 60}\n")
        return self._app.acquire_token_by_device_flow(flow)

    def _token_from_result(self, result: dict, scope: str) -> str:
        if "access_token" not in result:
            error = result.get("error_description", result.get("error", "Unknown"))
            raise AuthenticationError(f"Token acquisition for {scope} failed: {error}")
        tenant = (result.get("id_token_claims") or {}).get("tid")
        if tenant:
            self._tenant_id = tenant
        return result["access_token"]
