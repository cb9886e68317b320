"""Azure DevOps access tokens via az CLI delegation.

This module NEVER stores credentials. The interactive login and token
issuance are delegated to the Azure CLI, which keeps its tokens in ~/.azure/.
A token is requested once per invocation and discarded after use.

The credential helper is hidden behind the CredentialHelper protocol so the
variable fetcher can be tested against a fake without spawning processes.

Security:
- No credential storage
- Delegates to az CLI
- Sanitizes helper output before it reaches logs or errors
"""

import json
import logging
import shutil
import subprocess
from typing import Protocol, runtime_checkable

from dotenvify.errors import DotenvifyError
from dotenvify.log_sanitizer import LogSanitizer

logger = logging.getLogger(__name__)

# Well-known application id of Azure DevOps in Entra ID
AZURE_DEVOPS_RESOURCE_ID = "499b84ac-1321-427f-aa17-267ca6975798"

AZ_CLI_INSTALL_URL = "https://docs.microsoft.com/en-us/cli/azure/install-azure-cli"


class AuthenticationError(DotenvifyError):
    """Base class for token acquisition failures."""

    pass


class CredentialHelperMissingError(AuthenticationError):
    """Raised when the credential helper binary is not on PATH."""

    pass


class NotAuthenticatedError(AuthenticationError):
    """Raised when the credential helper has no logged-in session."""

    pass


class TokenAcquisitionError(AuthenticationError):
    """Raised when the helper fails to issue a token or its output is unusable."""

    pass


@runtime_checkable
class CredentialHelper(Protocol):
    """Protocol for an external program that issues bearer tokens."""

    def is_available(self) -> bool:
        """Return True if the helper can be executed."""
        ...

    def has_session(self) -> bool:
        """Return True if an authenticated session exists."""
        ...

    def issue_token(self, resource: str) -> str:
        """Issue an access token for the given resource.

        Raises:
            TokenAcquisitionError: If no token can be obtained
        """
        ...


class AzureCLICredentialHelper:
    """CredentialHelper backed by the `az` executable."""

    def __init__(self, executable: str = "az", timeout: int = 30):
        """Initialize the helper.

        Args:
            executable: Name or path of the Azure CLI binary
            timeout: Seconds allowed for each az invocation
        """
        self.executable = executable
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def has_session(self) -> bool:
        try:
            result = subprocess.run(
                [self.executable, "account", "show"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"az account show failed: {e}")
            return False
        return result.returncode == 0

    def issue_token(self, resource: str) -> str:
        try:
            result = subprocess.run(
                [self.executable, "account", "get-access-token", "--resource", resource],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = LogSanitizer.sanitize((e.stderr or "").strip())
            raise TokenAcquisitionError(f"Failed to get access token: {stderr or e}") from e
        except subprocess.TimeoutExpired as e:
            raise TokenAcquisitionError(
                f"Timed out after {self.timeout}s waiting for an access token"
            ) from e
        except OSError as e:
            raise TokenAcquisitionError(f"Failed to run {self.executable}: {e}") from e

        try:
            token = json.loads(result.stdout)["accessToken"]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise TokenAcquisitionError(f"Failed to parse access token: {e}") from e

        if not isinstance(token, str) or not token:
            raise TokenAcquisitionError("Failed to parse access token: empty accessToken")
        return token


def acquire_token(
    helper: CredentialHelper | None = None, resource: str = AZURE_DEVOPS_RESOURCE_ID
) -> str:
    """Borrow a bearer token from the credential helper.

    Checks run in order and the first failure is raised; nothing is retried.

    Args:
        helper: Credential helper (defaults to the Azure CLI)
        resource: Resource identifier the token is issued for

    Returns:
        Access token string

    Raises:
        CredentialHelperMissingError: If the helper is not installed
        NotAuthenticatedError: If there is no logged-in session
        TokenAcquisitionError: If the token cannot be issued or parsed
    """
    helper = helper or AzureCLICredentialHelper()

    if not helper.is_available():
        raise CredentialHelperMissingError(
            f"Azure CLI not found. Please install it from {AZ_CLI_INSTALL_URL}"
        )

    if not helper.has_session():
        raise NotAuthenticatedError("Not logged in to Azure CLI. Please run 'az login' first")

    token = helper.issue_token(resource)
    logger.debug(f"Acquired access token {LogSanitizer.mask_value(token)}")
    return token


__all__ = [
    "AZURE_DEVOPS_RESOURCE_ID",
    "AuthenticationError",
    "AzureCLICredentialHelper",
    "CredentialHelper",
    "CredentialHelperMissingError",
    "NotAuthenticatedError",
    "TokenAcquisitionError",
    "acquire_token",
]
