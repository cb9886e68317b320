"""Azure DevOps variable group client.

Fetches variable groups from the Azure DevOps REST API:

    GET https://dev.azure.com/{org}/{project}/_apis/distributedtask/variablegroups

One token is borrowed from the credential helper and one request is issued
per lookup, however many groups are requested. Groups are never cached.

Security Requirements:
- HTTPS only for API calls
- Input validation before any network call
- Timeout on API calls
- Response bodies sanitized before they reach errors or logs
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

from dotenvify.azure_auth import CredentialHelper, acquire_token
from dotenvify.errors import DotenvifyError, InvalidArgumentError
from dotenvify.log_sanitizer import LogSanitizer

logger = logging.getLogger(__name__)

# https://dev.azure.com/{organization}/{project}
_DEV_AZURE_URL = re.compile(r"^https?://dev\.azure\.com/([^/]+)/([^/]+)")
# https://{organization}.visualstudio.com/{project}
_VISUALSTUDIO_URL = re.compile(r"^https?://([^./]+)\.visualstudio\.com/([^/]+)")

MAX_ERROR_BODY = 500


class RemoteRequestError(DotenvifyError):
    """Raised when the Azure DevOps API request fails."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GroupNotFoundError(DotenvifyError):
    """Raised when no variable group has the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Variable group '{name}' not found")
        self.name = name


@dataclass
class Variable:
    """One entry of a variable group."""

    value: str = ""
    is_secret: bool = False
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Variable":
        """Create from an API payload entry.

        Secret values come back as null and are mapped to an empty string.
        A missing 'enabled' field means the entry is enabled.
        """
        value = data.get("value")
        return cls(
            value="" if value is None else str(value),
            is_secret=bool(data.get("isSecret", False)),
            enabled=bool(data.get("enabled", True)),
        )


@dataclass
class VariableGroup:
    """A named bundle of variables stored in Azure DevOps."""

    id: int
    name: str
    variables: dict[str, Variable] = field(default_factory=dict)
    type: str = ""
    is_shared: bool = False
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VariableGroup":
        """Create from an API payload entry."""
        variables = data.get("variables") or {}
        return cls(
            id=int(data.get("id", 0)),
            name=data.get("name", ""),
            variables={name: Variable.from_dict(entry or {}) for name, entry in variables.items()},
            type=data.get("type", ""),
            is_shared=bool(data.get("isShared", False)),
            description=data.get("description"),
        )


def _require(value: str | None, what: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(f"{what} is required")
    return value.strip()


def parse_devops_url(url: str) -> tuple[str, str]:
    """Extract organization and project from an Azure DevOps project URL.

    Accepts https://dev.azure.com/{org}/{project} and
    https://{org}.visualstudio.com/{project}, with or without trailing path.

    Args:
        url: Project URL

    Returns:
        Tuple of (organization, project)

    Raises:
        InvalidArgumentError: If the URL matches neither format
    """
    url = (url or "").strip()
    for pattern in (_DEV_AZURE_URL, _VISUALSTUDIO_URL):
        match = pattern.match(url)
        if match:
            return match.group(1), match.group(2)

    raise InvalidArgumentError(
        "Invalid Azure DevOps URL format. Expected: "
        "https://dev.azure.com/{organization}/{project} or "
        "https://{organization}.visualstudio.com/{project}"
    )


def find_group(groups: Iterable[VariableGroup], name: str) -> VariableGroup:
    """Return the first group whose name matches exactly.

    The API does not define an order, so when several groups share a name the
    first one in the response wins and the others are reported as a warning.

    Raises:
        GroupNotFoundError: If no group has the name
    """
    matches = [group for group in groups if group.name == name]
    if not matches:
        raise GroupNotFoundError(name)

    if len(matches) > 1:
        ignored = ", ".join(str(group.id) for group in matches[1:])
        logger.warning(
            f"Multiple variable groups named '{name}'; using id {matches[0].id}, ignoring {ignored}"
        )
    return matches[0]


def flatten_variables(group: VariableGroup, include_disabled: bool = False) -> dict[str, str]:
    """Reduce a group to a plain name/value mapping.

    Args:
        group: Variable group
        include_disabled: Keep entries explicitly marked as disabled

    Returns:
        Mapping of variable name to value
    """
    variables = {}
    empty_secrets = []
    for name, variable in group.variables.items():
        if not variable.enabled and not include_disabled:
            logger.debug(f"Skipping disabled variable {name}")
            continue
        if variable.is_secret and not variable.value:
            empty_secrets.append(name)
        variables[name] = variable.value

    if empty_secrets:
        logger.warning(
            f"Secret variables in '{group.name}' have no readable value: "
            f"{', '.join(sorted(empty_secrets))}"
        )
    return variables


class AzureDevOpsClient:
    """Read-only client for Azure DevOps variable groups."""

    API_HOST = "dev.azure.com"
    API_VERSION = "6.0-preview.2"
    API_TIMEOUT = 30

    def __init__(
        self,
        organization: str,
        project: str,
        credential_helper: CredentialHelper | None = None,
        timeout: int = API_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            organization: Azure DevOps organization name
            project: Project name
            credential_helper: Token source (defaults to the Azure CLI)
            timeout: HTTP timeout in seconds

        Raises:
            InvalidArgumentError: If organization or project is blank
        """
        self.organization = _require(organization, "Organization name")
        self.project = _require(project, "Project name")
        self.credential_helper = credential_helper
        self.timeout = timeout

    @property
    def variable_groups_url(self) -> str:
        return (
            f"https://{self.API_HOST}/{quote(self.organization, safe='')}/"
            f"{quote(self.project, safe='')}/_apis/distributedtask/variablegroups"
            f"?api-version={self.API_VERSION}"
        )

    def list_variable_groups(self) -> list[VariableGroup]:
        """Fetch every variable group of the project.

        Returns:
            Groups in response order

        Raises:
            AuthenticationError: If no token can be borrowed
            RemoteRequestError: If the request fails or returns non-2xx
        """
        token = acquire_token(self.credential_helper)
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

        logger.debug(f"GET {self.variable_groups_url}")
        try:
            response = requests.get(self.variable_groups_url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteRequestError(
                f"API request failed: {LogSanitizer.sanitize_exception(e)}"
            ) from e

        if not 200 <= response.status_code < 300:
            body = LogSanitizer.sanitize(response.text or "")[:MAX_ERROR_BODY]
            raise RemoteRequestError(
                f"API request failed with status {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )

        try:
            payload = response.json()
            groups = [VariableGroup.from_dict(entry) for entry in payload.get("value") or []]
        except (ValueError, AttributeError, TypeError) as e:
            raise RemoteRequestError(
                f"Unexpected API response: {e}", status_code=response.status_code
            ) from e

        logger.debug(f"Received {len(groups)} variable groups (count={payload.get('count')})")
        return groups

    def get_variable_group_by_name(self, name: str) -> VariableGroup:
        """Fetch a single variable group by exact name.

        Raises:
            InvalidArgumentError: If name is blank
            GroupNotFoundError: If no group has the name
        """
        return self.get_variable_groups_by_name([name])[0]

    def get_variable_groups_by_name(self, names: list[str]) -> list[VariableGroup]:
        """Fetch several variable groups with a single API request.

        Args:
            names: Group names, in the order results should be returned

        Returns:
            One group per name

        Raises:
            InvalidArgumentError: If names is empty or contains a blank name
            GroupNotFoundError: For the first name that does not exist
        """
        if not names:
            raise InvalidArgumentError("Variable group name is required")
        names = [_require(name, "Variable group name") for name in names]

        groups = self.list_variable_groups()
        return [find_group(groups, name) for name in names]


def fetch_variables(
    organization: str,
    project: str,
    group_names: list[str],
    credential_helper: CredentialHelper | None = None,
    include_disabled: bool = False,
) -> dict[str, str]:
    """Fetch and flatten one or more variable groups.

    Later groups override earlier ones when names collide.

    Args:
        organization: Azure DevOps organization name
        project: Project name
        group_names: Variable group names
        credential_helper: Token source (defaults to the Azure CLI)
        include_disabled: Keep entries explicitly marked as disabled

    Returns:
        Mapping of variable name to value
    """
    client = AzureDevOpsClient(organization, project, credential_helper=credential_helper)

    logger.info(f"Fetching variable group(s) {', '.join(repr(n) for n in group_names)}...")
    groups = client.get_variable_groups_by_name(group_names)

    variables: dict[str, str] = {}
    for group in groups:
        logger.info(f"Processing variables from group '{group.name}'...")
        variables.update(flatten_variables(group, include_disabled=include_disabled))
    return variables


__all__ = [
    "AzureDevOpsClient",
    "GroupNotFoundError",
    "RemoteRequestError",
    "Variable",
    "VariableGroup",
    "fetch_variables",
    "find_group",
    "flatten_variables",
    "parse_devops_url",
]
